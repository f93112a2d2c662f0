"""Survival splitting rule based on the logrank statistic."""

from __future__ import annotations

import math
from bisect import bisect_right
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from splitforest.base import Split, SplittingRule, TrainingData


@dataclass
class _NodeCounts:
    """Per-node quantities shared by every candidate split variable."""

    size: int
    min_child_size: int
    num_failures_node: int
    num_failures: int
    relabeled: np.ndarray
    at_risk: List[float]
    numerator_weights: List[float]
    denominator_weights: List[float]


class SurvivalSplittingRule(SplittingRule):
    """Chooses the split with the largest logrank statistic between the children.

    Responses hold observed times and ``data.failure`` marks which of them are
    failures rather than censored. Each child must contain at least
    ``max(ceil(n * alpha), 1)`` failures, where ``n`` is the node size.
    """

    def __init__(self, alpha: float) -> None:
        self.alpha = alpha

    def find_best_split(self, data: TrainingData, samples: Sequence[int],
                        possible_split_vars: Sequence[int],
                        responses_by_sample: np.ndarray) -> Optional[Split]:
        split, logrank = self.best_split_with_statistic(
            data, samples, possible_split_vars, responses_by_sample)
        return split if logrank > 0.0 else None

    def best_split_with_statistic(self, data: TrainingData, samples: Sequence[int],
                                  possible_split_vars: Sequence[int],
                                  responses_by_sample: np.ndarray
                                  ) -> Tuple[Optional[Split], float]:
        """Return the best split and its logrank statistic (0 and None if none is found)."""
        if data.failure is None:
            raise ValueError("training data has no failure indicator")
        ids = [int(s) for s in np.asarray(samples, dtype=np.intp).reshape(-1)]
        responses = np.asarray(responses_by_sample, dtype=float)
        if responses.ndim == 2:
            responses = responses[:, 0]

        node = self._node_counts(data, ids, responses)
        if node is None:
            return None, 0.0

        best: Optional[Split] = None
        best_logrank = 0.0
        for var in possible_split_vars:
            candidate = self._best_split_value(data, ids, int(var), node, best_logrank)
            if candidate is not None:
                best_logrank, best = candidate
        return best, best_logrank

    def _node_counts(self, data: TrainingData, ids: List[int],
                     responses: np.ndarray) -> Optional[_NodeCounts]:
        size_node = len(ids)
        min_child_size = max(math.ceil(size_node * self.alpha), 1)

        failure_times = [float(responses[s]) for s in ids if data.failure[s]]
        num_failures_node = len(failure_times)
        failure_values = sorted(set(failure_times))
        num_failures = len(failure_values)
        if num_failures <= 1:
            return None

        count_failure = [0.0] * (num_failures + 1)
        count_censor = [0.0] * (num_failures + 1)
        relabeled = np.zeros(data.num_rows, dtype=np.intp)
        for sample in ids:
            label = bisect_right(failure_values, float(responses[sample]))
            relabeled[sample] = label
            if data.failure[sample]:
                count_failure[label] += 1
            else:
                count_censor[label] += 1

        at_risk = [0.0] * (num_failures + 1)
        at_risk[0] = float(size_node)
        numerator_weights = [0.0] * (num_failures + 1)
        denominator_weights = [0.0] * (num_failures + 1)
        for time in range(1, num_failures + 1):
            at_risk[time] = at_risk[time - 1] - count_failure[time - 1] - count_censor[time - 1]
            y_k = at_risk[time]
            d_k = count_failure[time]
            numerator_weights[time] = d_k / y_k if y_k > 0 else 0.0
            # Only used when at least two are at risk.
            denominator_weights[time] = ((y_k - d_k) / (y_k - 1) * d_k / (y_k * y_k)
                                         if y_k > 1 else 0.0)

        return _NodeCounts(size=size_node, min_child_size=min_child_size,
                           num_failures_node=num_failures_node, num_failures=num_failures,
                           relabeled=relabeled, at_risk=at_risk,
                           numerator_weights=numerator_weights,
                           denominator_weights=denominator_weights)

    def _best_split_value(self, data: TrainingData, ids: List[int], var: int,
                          node: _NodeCounts,
                          best_logrank: float) -> Optional[Tuple[float, Split]]:
        ordered = data.sorted_values(ids, var)
        values = ordered.values
        if values.size < 2:
            return None
        sorted_samples = [int(s) for s in ordered.samples]
        column = [float(data.x[s, var]) for s in sorted_samples]
        size_node = node.size
        num_failures = node.num_failures
        min_child_size = node.min_child_size

        left_failure = [0.0] * (num_failures + 1)
        left_censor = [0.0] * (num_failures + 1)
        n_missing = 0
        num_failures_missing = 0
        for i in range(size_node - 1):
            if math.isnan(column[i]):
                sample = sorted_samples[i]
                time = node.relabeled[sample]
                if data.failure[sample]:
                    left_failure[time] += 1
                    num_failures_missing += 1
                else:
                    left_censor[time] += 1
                n_missing += 1

        num_splits = values.size - 1
        n_left = n_missing
        num_failures_left = num_failures_missing
        split_index = 0
        start_sample = n_missing - 1 if n_missing > 0 else 0

        best: Optional[Tuple[float, Split]] = None
        for send_left in (True, False):
            if not send_left:
                if n_missing == 0:
                    break
                left_failure = [0.0] * (num_failures + 1)
                left_censor = [0.0] * (num_failures + 1)
                n_left = 0
                num_failures_left = 0
                # Splitting on NaN while sending missing values right is pointless.
                split_index = 1
                start_sample = n_missing

            for i in range(start_sample, size_node - 1):
                sample = sorted_samples[i]
                sample_value = column[i]
                next_value = column[i + 1]
                time = node.relabeled[sample]

                if not math.isnan(sample_value):
                    n_left += 1
                    if data.failure[sample]:
                        left_failure[time] += 1
                        num_failures_left += 1
                    else:
                        left_censor[time] += 1

                if num_failures_left < min_child_size:
                    if sample_value != next_value:
                        split_index += 1
                    continue

                if node.num_failures_node - num_failures_left < min_child_size:
                    break

                if sample_value != next_value:
                    logrank = self._logrank(node, n_left, left_failure, left_censor)
                    if logrank > best_logrank:
                        best_logrank = logrank
                        best = (logrank, Split(var=var, value=float(values[split_index]),
                                               send_missing_left=send_left))
                    split_index += 1

                if split_index == num_splits:
                    break
        return best

    @staticmethod
    def _logrank(node: _NodeCounts, n_left: int, left_failure: List[float],
                 left_censor: List[float]) -> float:
        numerator = 0.0
        denominator = 0.0
        cum_sum = 0.0
        for time in range(1, node.num_failures + 1):
            cum_sum += left_failure[time - 1] + left_censor[time - 1]
            y_left = n_left - cum_sum
            if y_left == 0:
                break
            y = node.at_risk[time]
            if y < 2:
                break
            d_left = left_failure[time]
            numerator += d_left - y_left * node.numerator_weights[time]
            denominator += y_left * (y - y_left) * node.denominator_weights[time]
        if denominator > 0:
            return numerator * numerator / denominator
        return 0.0