import numpy as np
import pytest

from splitforest.base import TrainingData
from splitforest.relabeling import (
    CausalSurvivalRelabelingStrategy,
    MultiNoopRelabelingStrategy,
    NoopRelabelingStrategy,
    QuantileRelabelingStrategy,
)


def _data(outcomes, **kwargs):
    outcomes = np.asarray(outcomes, dtype=float)
    return TrainingData(x=np.zeros((outcomes.shape[0], 1)), outcomes=outcomes, **kwargs)


def test_noop_copies_outcomes():
    data = _data([5.0, 6.0, 7.0, 8.0])
    responses = NoopRelabelingStrategy().relabel([0, 2, 3], data)
    assert responses[[0, 2, 3], 0].tolist() == [5.0, 7.0, 8.0]
    assert np.isnan(responses[1, 0])


def test_multi_noop_copies_all_outcomes():
    outcomes = [[1.0, 10.0], [2.0, 20.0], [3.0, 30.0]]
    data = _data(outcomes)
    strategy = MultiNoopRelabelingStrategy(2)
    responses = strategy.relabel([0, 1, 2], data)
    assert strategy.response_length == 2
    np.testing.assert_array_equal(responses, np.asarray(outcomes))


def test_multi_noop_rejects_wrong_width():
    data = _data([[1.0, 2.0], [3.0, 4.0]])
    with pytest.raises(ValueError):
        MultiNoopRelabelingStrategy(3).relabel([0, 1], data)


def test_quantile_median_split():
    data = _data([4.0, 1.0, 3.0, 2.0])
    responses = QuantileRelabelingStrategy([0.5]).relabel([0, 1, 2, 3], data)
    assert responses[:, 0].tolist() == [1.0, 0.0, 1.0, 0.0]


def test_quantile_labels_are_monotone_in_outcome():
    outcomes = [0.3, 1.7, -2.0, 5.5, 0.0, 9.1, 4.4, 2.2]
    data = _data(outcomes)
    strategy = QuantileRelabelingStrategy([0.25, 0.5, 0.75])
    responses = strategy.relabel(list(range(len(outcomes))), data)
    order = np.argsort(outcomes)
    labels = responses[order, 0]
    assert all(a <= b for a, b in zip(labels, labels[1:]))
    assert labels.max() <= len(strategy.quantiles)


def test_quantile_duplicate_cutoffs_collapse():
    data = _data([1.0, 1.0, 1.0, 1.0])
    responses = QuantileRelabelingStrategy([0.25, 0.5, 0.75]).relabel([0, 1, 2, 3], data)
    assert set(responses[:, 0].tolist()) == {0.0}


def test_quantile_rejects_out_of_range():
    with pytest.raises(ValueError):
        QuantileRelabelingStrategy([0.0])


def test_causal_survival_responses_sum_to_zero():
    data = _data(
        [0.0, 0.0, 0.0, 0.0],
        causal_survival_numerator=[1.0, 2.0, -0.5, 3.0],
        causal_survival_denominator=[0.5, 1.5, 2.0, 1.0],
    )
    responses = CausalSurvivalRelabelingStrategy().relabel([0, 1, 2, 3], data)
    assert abs(responses[:, 0].sum()) < 1e-12


def test_causal_survival_matches_ratio_influence():
    numerator = [1.0, 3.0]
    denominator = [1.0, 1.0]
    data = _data([0.0, 0.0], causal_survival_numerator=numerator,
                 causal_survival_denominator=denominator)
    responses = CausalSurvivalRelabelingStrategy().relabel([0, 1], data)
    assert responses[:, 0].tolist() == pytest.approx([-0.5, 0.5])


def test_causal_survival_stops_on_zero_denominator():
    data = _data(
        [0.0, 0.0],
        causal_survival_numerator=[1.0, 2.0],
        causal_survival_denominator=[1.0, -1.0],
    )
    assert CausalSurvivalRelabelingStrategy().relabel([0, 1], data) is None


def test_causal_survival_requires_fields():
    data = _data([0.0, 1.0])
    with pytest.raises(ValueError):
        CausalSurvivalRelabelingStrategy().relabel([0, 1], data)