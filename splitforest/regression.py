"""Regression splitting rule: maximise the weighted between-children sum of squares."""

from __future__ import annotations

import math
from typing import Optional, Sequence, Tuple

import numpy as np

from splitforest.base import SortedValues, Split, SplittingRule, TrainingData


def _bucket_samples(data: TrainingData, ordered: SortedValues,
                    var: int) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Assign every sorted sample but the last to the bucket of its split value.

    Returns the samples considered, a mask of those missing the covariate, and
    the bucket index of each non-missing one. When values are missing, bucket 0
    stands for the NaN split value and stays empty.
    """
    considered = ordered.samples[:-1]
    column = data.x[considered, var]
    missing = np.isnan(column)
    offset = 1 if np.isnan(ordered.values[0]) else 0
    buckets = np.searchsorted(ordered.values[offset:], column[~missing]) + offset
    return considered, missing, buckets


class RegressionSplittingRule(SplittingRule):
    """Chooses the split that most increases the sum of squared child means.

    Each child must hold at least ``max(ceil(n * alpha), 1)`` samples, and
    splits near the edges of the data are penalised by ``imbalance_penalty``.
    """

    def __init__(self, alpha: float, imbalance_penalty: float) -> None:
        self.alpha = alpha
        self.imbalance_penalty = imbalance_penalty

    def find_best_split(self, data: TrainingData, samples: Sequence[int],
                        possible_split_vars: Sequence[int],
                        responses_by_sample: np.ndarray) -> Optional[Split]:
        ids = np.asarray(samples, dtype=np.intp).reshape(-1)
        responses = np.asarray(responses_by_sample, dtype=float)
        if responses.ndim == 2:
            responses = responses[:, 0]
        size_node = ids.size
        min_child_size = max(math.ceil(size_node * self.alpha), 1)

        weights = data.weights[ids]
        weight_sum_node = float(np.sum(weights))
        sum_node = float(np.sum(weights * responses[ids]))

        best: Optional[Split] = None
        best_decrease = 0.0
        for var in possible_split_vars:
            candidate = self._best_split_value(data, ids, var, responses, weight_sum_node,
                                               sum_node, min_child_size)
            if candidate is not None and candidate[0] > best_decrease:
                best_decrease, best = candidate
        return best if best_decrease > 0.0 else None

    def _best_split_value(self, data: TrainingData, ids: np.ndarray, var: int,
                          responses: np.ndarray, weight_sum_node: float, sum_node: float,
                          min_child_size: int) -> Optional[Tuple[float, Split]]:
        ordered = data.sorted_values(ids, var)
        if ordered.values.size < 2:
            return None
        num_splits = ordered.values.size - 1
        size_node = ids.size

        considered, missing, buckets = _bucket_samples(data, ordered, var)
        weights = data.weights[considered]
        weighted = weights * responses[considered]
        present = ~missing
        length = num_splits + 1
        counter = np.bincount(buckets, minlength=length)[:num_splits]
        weight_sums = np.bincount(buckets, weights=weights[present], minlength=length)[:num_splits]
        sums = np.bincount(buckets, weights=weighted[present], minlength=length)[:num_splits]

        n_missing = int(np.count_nonzero(missing))
        weight_sum_missing = float(np.sum(weights[missing]))
        sum_missing = float(np.sum(weighted[missing]))

        best: Optional[Tuple[float, Split]] = None
        best_decrease = 0.0
        for send_left in (True, False):
            if send_left:
                n_left, weight_sum_left, sum_left = n_missing, weight_sum_missing, sum_missing
            else:
                if n_missing == 0:
                    break
                n_left, weight_sum_left, sum_left = 0, 0.0, 0.0

            for i in range(num_splits):
                if i == 0 and not send_left:
                    continue
                n_left += int(counter[i])
                weight_sum_left += float(weight_sums[i])
                sum_left += float(sums[i])

                if n_left < min_child_size:
                    continue
                n_right = size_node - n_left
                if n_right < min_child_size:
                    break

                with np.errstate(divide="ignore", invalid="ignore"):
                    left = np.float64(sum_left)
                    right = np.float64(sum_node - sum_left)
                    decrease = (left * left / np.float64(weight_sum_left)
                                + right * right / np.float64(weight_sum_node - weight_sum_left))
                decrease -= self.imbalance_penalty * (1.0 / n_left + 1.0 / n_right)

                if decrease > best_decrease:
                    best_decrease = float(decrease)
                    best = (best_decrease,
                            Split(var=int(var), value=float(ordered.values[i]),
                                  send_missing_left=send_left))
        return best