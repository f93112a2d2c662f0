"""Instrumental splitting rule: regression splits constrained by the instrument's spread."""

from __future__ import annotations

from typing import NamedTuple, Optional, Sequence, Tuple

import numpy as np

from splitforest.base import Split, SplittingRule, TrainingData


class _NodeStats(NamedTuple):
    num_samples: int
    weight_sum: float
    sum: float
    sum_z: float
    sum_z_squared: float
    mean_z: float
    num_small_z: int
    min_child_size: float


class InstrumentalSplittingRule(SplittingRule):
    """Chooses the regression split that keeps enough instrument variation in each child.

    Every child must hold at least ``min_node_size`` samples whose instrument
    lies below the parent's mean and as many at or above it. The weighted
    instrument variation of each child must be at least ``alpha`` times that of
    the parent. Splits whose children have little variation are penalised by
    ``imbalance_penalty``.
    """

    def __init__(self, min_node_size: int, alpha: float, imbalance_penalty: float) -> None:
        self.min_node_size = min_node_size
        self.alpha = alpha
        self.imbalance_penalty = imbalance_penalty

    def find_best_split(self, data: TrainingData, samples: Sequence[int],
                        possible_split_vars: Sequence[int],
                        responses_by_sample: np.ndarray) -> Optional[Split]:
        if data.instrument is None:
            raise ValueError("training data has no instrument")
        ids = np.asarray(samples, dtype=np.intp).reshape(-1)
        responses = np.asarray(responses_by_sample, dtype=float)
        if responses.ndim == 2:
            responses = responses[:, 0]

        weights = data.weights[ids]
        z = data.instrument[ids]
        weight_sum = np.float64(np.sum(weights))
        sum_z = np.float64(np.sum(weights * z))
        sum_z_squared = np.float64(np.sum(weights * z * z))
        with np.errstate(divide="ignore", invalid="ignore"):
            size_node = sum_z_squared - sum_z * sum_z / weight_sum
            mean_z = sum_z / weight_sum
        node = _NodeStats(
            num_samples=ids.size,
            weight_sum=float(weight_sum),
            sum=float(np.sum(weights * responses[ids])),
            sum_z=float(sum_z),
            sum_z_squared=float(sum_z_squared),
            mean_z=float(mean_z),
            num_small_z=int(np.count_nonzero(z < mean_z)),
            min_child_size=float(size_node * self.alpha),
        )

        best: Optional[Split] = None
        best_decrease = 0.0
        for var in possible_split_vars:
            candidate = self._best_split_value(data, ids, var, responses, node)
            if candidate is not None and candidate[0] > best_decrease:
                best_decrease, best = candidate
        return best if best_decrease > 0.0 else None

    def _best_split_value(self, data: TrainingData, ids: np.ndarray, var: int,
                          responses: np.ndarray,
                          node: _NodeStats) -> Optional[Tuple[float, Split]]:
        ordered = data.sorted_values(ids, var)
        if ordered.values.size < 2:
            return None
        num_splits = ordered.values.size - 1

        considered = ordered.samples[:-1]
        column = data.x[considered, var]
        missing = np.isnan(column)
        present = ~missing
        offset = 1 if np.isnan(ordered.values[0]) else 0
        buckets = np.searchsorted(ordered.values[offset:], column[present]) + offset

        weights = data.weights[considered]
        z = data.instrument[considered]
        weighted_response = weights * responses[considered]
        weighted_z = weights * z
        weighted_z_squared = weights * z * z
        small_z = (z < node.mean_z).astype(float)

        length = num_splits + 1

        def per_bucket(values: Optional[np.ndarray]) -> np.ndarray:
            if values is None:
                counts = np.bincount(buckets, minlength=length)
            else:
                counts = np.bincount(buckets, weights=values[present], minlength=length)
            return counts[:num_splits]

        counter = per_bucket(None)
        weight_sums = per_bucket(weights)
        sums = per_bucket(weighted_response)
        num_small_z = per_bucket(small_z)
        sums_z = per_bucket(weighted_z)
        sums_z_squared = per_bucket(weighted_z_squared)

        n_missing = int(np.count_nonzero(missing))
        missing_totals = (
            n_missing,
            float(np.sum(weights[missing])),
            float(np.sum(weighted_response[missing])),
            float(np.sum(weighted_z[missing])),
            float(np.sum(weighted_z_squared[missing])),
            int(np.count_nonzero(small_z[missing])),
        )

        min_node_size = self.min_node_size
        penalty = self.imbalance_penalty
        best: Optional[Tuple[float, Split]] = None
        best_decrease = 0.0
        for send_left in (True, False):
            if send_left:
                (n_left, weight_sum_left, sum_left, sum_left_z,
                 sum_left_z_squared, num_left_small_z) = missing_totals
            else:
                if n_missing == 0:
                    break
                n_left, weight_sum_left, sum_left = 0, 0.0, 0.0
                sum_left_z, sum_left_z_squared, num_left_small_z = 0.0, 0.0, 0

            for i in range(num_splits):
                if i == 0 and not send_left:
                    continue
                n_left += int(counter[i])
                num_left_small_z += int(num_small_z[i])
                weight_sum_left += float(weight_sums[i])
                sum_left += float(sums[i])
                sum_left_z += float(sums_z[i])
                sum_left_z_squared += float(sums_z_squared[i])

                num_left_large_z = n_left - num_left_small_z
                if num_left_small_z < min_node_size or num_left_large_z < min_node_size:
                    continue

                n_right = node.num_samples - n_left
                num_right_small_z = node.num_small_z - num_left_small_z
                num_right_large_z = n_right - num_right_small_z
                if num_right_small_z < min_node_size or num_right_large_z < min_node_size:
                    break

                with np.errstate(divide="ignore", invalid="ignore"):
                    left_z = np.float64(sum_left_z)
                    size_left = (np.float64(sum_left_z_squared)
                                 - left_z * left_z / np.float64(weight_sum_left))
                    if size_left < node.min_child_size or (penalty > 0.0 and size_left == 0):
                        continue

                    weight_sum_right = np.float64(node.weight_sum - weight_sum_left)
                    sum_right = np.float64(node.sum - sum_left)
                    right_z = np.float64(node.sum_z - sum_left_z)
                    size_right = (np.float64(node.sum_z_squared - sum_left_z_squared)
                                  - right_z * right_z / weight_sum_right)
                    if size_right < node.min_child_size or (penalty > 0.0 and size_right == 0):
                        continue

                    left = np.float64(sum_left)
                    decrease = (left * left / np.float64(weight_sum_left)
                                + sum_right * sum_right / weight_sum_right)
                    decrease -= penalty * (1.0 / size_left + 1.0 / size_right)

                if decrease > best_decrease:
                    best_decrease = float(decrease)
                    best = (best_decrease,
                            Split(var=int(var), value=float(ordered.values[i]),
                                  send_missing_left=send_left))
        return best