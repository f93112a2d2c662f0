# splitforest

The per-node building blocks for growing one tree of a generalized random forest:

- **relabeling strategies** turn a node's outcomes into pseudo-responses;
- **splitting rules** choose the best split of a node on those responses;
- **a random sampler** draws samples, clusters and subsamples for each tree.

## Installation

```
pip install splitforest
```

To run the tests as well, install the `test` extra:

```
pip install "splitforest[test]"
pytest
```

## Modules

| Module | Contents |
| --- | --- |
| `splitforest.base` | `TrainingData`, `Split`, and the `SplittingRule` and `RelabelingStrategy` base classes |
| `splitforest.relabeling` | `NoopRelabelingStrategy`, `MultiNoopRelabelingStrategy`, `QuantileRelabelingStrategy`, `CausalSurvivalRelabelingStrategy` |
| `splitforest.sampling` | `SamplingOptions`, `RandomSampler` |
| `splitforest.regression` | `RegressionSplittingRule` |
| `splitforest.probability` | `ProbabilitySplittingRule` |
| `splitforest.instrumental` | `InstrumentalSplittingRule` |
| `splitforest.survival` | `SurvivalSplittingRule` |

## Training data

`TrainingData` holds a covariate matrix `x` (one row per sample) and the
per-sample quantities the rules need, each optional: `outcomes`, `treatments`,
`instrument`, `weights` (all ones when not given), `failure` (a boolean
failure indicator), and `causal_survival_numerator` /
`causal_survival_denominator`. Missing covariate values are written as `NaN`.

## Relabeling

`relabel(samples, data)` returns an array of shape
`(data.num_rows, response_length)` whose rows for the given samples hold the
new responses (other rows are `NaN`), or `None` when the node should not be
split further.

- `NoopRelabelingStrategy()` uses the first outcome unchanged.
- `MultiNoopRelabelingStrategy(num_outcomes)` uses all outcomes as a vector response.
- `QuantileRelabelingStrategy(quantiles)` labels each sample with the index of the
  quantile bucket its outcome falls in; quantiles must lie in `(0, 1]`.
- `CausalSurvivalRelabelingStrategy()` uses each sample's influence on the ratio
  of the weighted numerator and denominator sums; it returns `None` when the
  denominator sum is (near) zero.

## Splitting rules

`find_best_split(data, samples, possible_split_vars, responses_by_sample)`
returns a `Split` (`var`, `value`, `send_missing_left`) or `None` when no split
improves on the node. Samples whose covariate is missing are tried on both
sides of each candidate split.

- `RegressionSplittingRule(alpha, imbalance_penalty)`
- `ProbabilitySplittingRule(num_classes, alpha, imbalance_penalty)` — responses are class labels.
- `InstrumentalSplittingRule(min_node_size, alpha, imbalance_penalty)` — needs `data.instrument`.
- `SurvivalSplittingRule(alpha)` — responses are observed times and `data.failure`
  marks failures; `best_split_with_statistic` also returns the log-rank statistic.

```python
import numpy as np
from splitforest.base import TrainingData
from splitforest.relabeling import NoopRelabelingStrategy
from splitforest.regression import RegressionSplittingRule

x = np.array([[0.1], [0.4], [0.7], [0.9]])
data = TrainingData(x=x, outcomes=[1.0, 1.2, 5.0, 5.3])
samples = [0, 1, 2, 3]
responses = NoopRelabelingStrategy().relabel(samples, data)
split = RegressionSplittingRule(alpha=0.05, imbalance_penalty=0.0).find_best_split(
    data, samples, [0], responses)
```

## Sampling

`SamplingOptions(samples_per_cluster, sample_clusters)` groups samples by
cluster label. `RandomSampler(seed, options)` offers `sample_clusters`,
`sample_from_clusters`, `get_samples_in_clusters`, `sample`, `subsample`,
`subsample_with_oob`, `subsample_with_size`, `draw` and `sample_poisson`,
all driven by a seeded NumPy generator.

## What this package does not do

It does not grow whole trees or forests, make predictions, or store trained
models; it supplies only the pieces used at each node. It has no relabeling
for instrumental-variable, local-linear or multi-treatment effect estimation,
and no command-line interface.