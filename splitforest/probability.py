"""Classification splitting rule based on weighted class counts (Gini-style impurity)."""

from __future__ import annotations

import math
from typing import Optional, Sequence, Tuple

import numpy as np

from splitforest.base import Split, SplittingRule, TrainingData


class ProbabilitySplittingRule(SplittingRule):
    """Chooses the split maximising the size-normalised sum of squared class weights.

    Responses hold class labels ``0 .. num_classes - 1``. Each child must hold
    at least ``max(ceil(n * alpha), 1)`` samples.
    """

    def __init__(self, num_classes: int, alpha: float, imbalance_penalty: float) -> None:
        self.num_classes = num_classes
        self.alpha = alpha
        self.imbalance_penalty = imbalance_penalty

    def _check_classes(self, classes: np.ndarray) -> None:
        if classes.size and (classes.min() < 0 or classes.max() >= self.num_classes):
            raise ValueError(f"class labels must lie in 0 .. {self.num_classes - 1}")

    def find_best_split(self, data: TrainingData, samples: Sequence[int],
                        possible_split_vars: Sequence[int],
                        responses_by_sample: np.ndarray) -> Optional[Split]:
        ids = np.asarray(samples, dtype=np.intp).reshape(-1)
        responses = np.asarray(responses_by_sample, dtype=float)
        if responses.ndim == 2:
            responses = responses[:, 0]
        size_node = ids.size
        min_child_size = max(math.ceil(size_node * self.alpha), 1)

        node_classes = np.round(responses[ids]).astype(np.intp)
        self._check_classes(node_classes)
        class_counts = np.bincount(node_classes, weights=data.weights[ids],
                                   minlength=self.num_classes).astype(float)

        best: Optional[Split] = None
        best_decrease = 0.0
        for var in possible_split_vars:
            candidate = self._best_split_value(data, ids, var, responses, class_counts,
                                               min_child_size)
            if candidate is not None and candidate[0] > best_decrease:
                best_decrease, best = candidate
        return best if best_decrease > 0.0 else None

    def _best_split_value(self, data: TrainingData, ids: np.ndarray, var: int,
                          responses: np.ndarray, class_counts: np.ndarray,
                          min_child_size: int) -> Optional[Tuple[float, Split]]:
        ordered = data.sorted_values(ids, var)
        if ordered.values.size < 2:
            return None
        num_splits = ordered.values.size - 1
        size_node = ids.size
        num_classes = self.num_classes

        considered = ordered.samples[:-1]
        column = data.x[considered, var]
        missing = np.isnan(column)
        present = ~missing
        offset = 1 if np.isnan(ordered.values[0]) else 0
        buckets = np.searchsorted(ordered.values[offset:], column[present]) + offset

        classes = np.trunc(responses[considered]).astype(np.intp)
        self._check_classes(classes)
        weights = data.weights[considered]

        counter = np.bincount(buckets, minlength=num_splits + 1)[:num_splits]
        per_class = np.zeros((num_splits + 1, num_classes))
        np.add.at(per_class, (buckets, classes[present]), weights[present])
        per_class = per_class[:num_splits]

        n_missing = int(np.count_nonzero(missing))
        class_counts_missing = np.bincount(classes[missing], weights=weights[missing],
                                           minlength=num_classes).astype(float)

        best: Optional[Tuple[float, Split]] = None
        best_decrease = 0.0
        for send_left in (True, False):
            if send_left:
                n_left = n_missing
                left_counts = class_counts_missing.copy()
            else:
                if n_missing == 0:
                    break
                n_left = 0
                left_counts = np.zeros(num_classes)

            for i in range(num_splits):
                if i == 0 and not send_left:
                    continue
                n_left += int(counter[i])

                n_right = size_node - n_left
                if n_right < min_child_size:
                    break

                left_counts += per_class[i]
                right_counts = class_counts - left_counts
                sum_left = float(np.dot(left_counts, left_counts))
                sum_right = float(np.dot(right_counts, right_counts))

                if n_left < min_child_size:
                    continue

                decrease = sum_right / n_right + sum_left / n_left
                decrease -= self.imbalance_penalty * (1.0 / n_left + 1.0 / n_right)

                if decrease > best_decrease:
                    best_decrease = decrease
                    best = (decrease,
                            Split(var=int(var), value=float(ordered.values[i]),
                                  send_missing_left=send_left))
        return best