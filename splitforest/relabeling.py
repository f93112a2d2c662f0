"""Simple relabeling strategies: identity, multi-output identity, quantiles and causal survival."""

from __future__ import annotations

import math
from bisect import bisect_left
from itertools import groupby
from typing import Optional, Sequence

import numpy as np

from splitforest.base import RelabelingStrategy, TrainingData


class NoopRelabelingStrategy(RelabelingStrategy):
    """Uses the first outcome unchanged as the response."""

    def relabel(self, samples: Sequence[int], data: TrainingData) -> Optional[np.ndarray]:
        ids = np.asarray(samples, dtype=np.intp)
        responses = self._blank(data)
        responses[ids, 0] = data.outcome[ids]
        return responses


class MultiNoopRelabelingStrategy(RelabelingStrategy):
    """Uses all outcomes unchanged as a vector-valued response."""

    def __init__(self, num_outcomes: int) -> None:
        self.num_outcomes = num_outcomes

    @property
    def response_length(self) -> int:
        return self.num_outcomes

    def relabel(self, samples: Sequence[int], data: TrainingData) -> Optional[np.ndarray]:
        outcomes = data.outcome_matrix
        if outcomes.shape[1] != self.num_outcomes:
            raise ValueError(
                f"expected {self.num_outcomes} outcomes, data has {outcomes.shape[1]}")
        ids = np.asarray(samples, dtype=np.intp)
        responses = self._blank(data)
        responses[ids] = outcomes[ids]
        return responses


class QuantileRelabelingStrategy(RelabelingStrategy):
    """Labels each sample with the index of the quantile bucket its outcome falls in."""

    def __init__(self, quantiles: Sequence[float]) -> None:
        self.quantiles = list(quantiles)
        if any(not 0.0 < q <= 1.0 for q in self.quantiles):
            raise ValueError("quantiles must lie in (0, 1]")

    def relabel(self, samples: Sequence[int], data: TrainingData) -> Optional[np.ndarray]:
        ids = np.asarray(samples, dtype=np.intp)
        responses = self._blank(data)
        if ids.size == 0:
            return responses
        outcome = data.outcome
        sorted_outcomes = sorted(outcome[ids].tolist())
        n = len(sorted_outcomes)
        cutoffs = [sorted_outcomes[math.ceil(n * q) - 1] for q in self.quantiles]
        # Drop consecutive duplicate cutoffs.
        cutoffs = [value for value, _ in groupby(cutoffs)]
        for sample in ids:
            responses[sample, 0] = bisect_left(cutoffs, outcome[sample])
        return responses


class CausalSurvivalRelabelingStrategy(RelabelingStrategy):
    """Relabels with the influence of each sample on the ratio of causal survival sums."""

    def relabel(self, samples: Sequence[int], data: TrainingData) -> Optional[np.ndarray]:
        if data.causal_survival_numerator is None or data.causal_survival_denominator is None:
            raise ValueError("training data has no causal survival numerator and denominator")
        ids = np.asarray(samples, dtype=np.intp)
        weights = data.weights[ids]
        numerator = data.causal_survival_numerator[ids]
        denominator = data.causal_survival_denominator[ids]

        numerator_sum = float(np.sum(weights * numerator))
        denominator_sum = float(np.sum(weights * denominator))
        sum_weight = float(np.sum(weights))
        if abs(denominator_sum) < 1.0e-10 or abs(sum_weight) <= 1e-16:
            return None

        tau = numerator_sum / denominator_sum
        responses = self._blank(data)
        responses[ids, 0] = (numerator - denominator * tau) / denominator_sum
        return responses