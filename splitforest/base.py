"""Training data container and the interfaces for splitting rules and relabeling."""

from __future__ import annotations

import abc
from dataclasses import dataclass
from typing import NamedTuple, Optional, Sequence

import numpy as np


def _as_matrix(values, n_rows: int, name: str) -> Optional[np.ndarray]:
    if values is None:
        return None
    matrix = np.asarray(values, dtype=float)
    if matrix.ndim == 1:
        matrix = matrix.reshape(-1, 1)
    if matrix.ndim != 2 or matrix.shape[0] != n_rows:
        raise ValueError(f"{name} must have one row per sample ({n_rows})")
    return matrix


def _as_vector(values, n_rows: int, name: str, dtype=float) -> Optional[np.ndarray]:
    if values is None:
        return None
    vector = np.asarray(values, dtype=dtype).reshape(-1)
    if vector.shape[0] != n_rows:
        raise ValueError(f"{name} must have one entry per sample ({n_rows})")
    return vector


class SortedValues(NamedTuple):
    """A covariate's values over a set of samples, in sorted order.

    ``values`` holds the distinct values in increasing order, with NaN first
    when any sample is missing the covariate. ``samples`` holds the sample IDs
    sorted by their value (missing ones first), and ``index`` gives for each
    sorted position the position of that sample in the input sequence.
    """

    values: np.ndarray
    samples: np.ndarray
    index: np.ndarray


@dataclass
class TrainingData:
    """Covariates and the per-sample quantities the forest trains on."""

    x: np.ndarray
    outcomes: Optional[np.ndarray] = None
    treatments: Optional[np.ndarray] = None
    instrument: Optional[np.ndarray] = None
    weights: Optional[np.ndarray] = None
    failure: Optional[np.ndarray] = None
    causal_survival_numerator: Optional[np.ndarray] = None
    causal_survival_denominator: Optional[np.ndarray] = None

    def __post_init__(self) -> None:
        self.x = np.asarray(self.x, dtype=float)
        if self.x.ndim == 1:
            self.x = self.x.reshape(-1, 1)
        if self.x.ndim != 2:
            raise ValueError("x must be a two-dimensional covariate matrix")
        n = self.x.shape[0]
        self.outcomes = _as_matrix(self.outcomes, n, "outcomes")
        self.treatments = _as_matrix(self.treatments, n, "treatments")
        self.instrument = _as_vector(self.instrument, n, "instrument")
        self.weights = (np.ones(n) if self.weights is None
                        else _as_vector(self.weights, n, "weights"))
        self.failure = _as_vector(self.failure, n, "failure", dtype=bool)
        self.causal_survival_numerator = _as_vector(
            self.causal_survival_numerator, n, "causal_survival_numerator")
        self.causal_survival_denominator = _as_vector(
            self.causal_survival_denominator, n, "causal_survival_denominator")

    @property
    def num_rows(self) -> int:
        return self.x.shape[0]

    @property
    def num_cols(self) -> int:
        return self.x.shape[1]

    @property
    def num_outcomes(self) -> int:
        return 0 if self.outcomes is None else self.outcomes.shape[1]

    @property
    def num_treatments(self) -> int:
        return 0 if self.treatments is None else self.treatments.shape[1]

    @property
    def outcome_matrix(self) -> np.ndarray:
        if self.outcomes is None:
            raise ValueError("training data has no outcomes")
        return self.outcomes

    @property
    def treatment_matrix(self) -> np.ndarray:
        if self.treatments is None:
            raise ValueError("training data has no treatments")
        return self.treatments

    @property
    def outcome(self) -> np.ndarray:
        """The first outcome column."""
        return self.outcome_matrix[:, 0]

    @property
    def treatment(self) -> np.ndarray:
        """The first treatment column."""
        return self.treatment_matrix[:, 0]

    def sorted_values(self, samples: Sequence[int], var: int) -> SortedValues:
        """Sort ``samples`` by covariate ``var``, missing values first."""
        sample_ids = np.asarray(samples, dtype=np.intp).reshape(-1)
        column = self.x[sample_ids, var]
        missing = np.isnan(column)
        # lexsort uses its last key as the primary one: missing samples come first.
        order = np.lexsort((np.where(missing, 0.0, column), ~missing))
        distinct = np.unique(column[~missing])
        if missing.any():
            distinct = np.concatenate(([np.nan], distinct))
        return SortedValues(values=distinct, samples=sample_ids[order], index=order)


@dataclass(frozen=True)
class Split:
    """The chosen split of a node: covariate, threshold and where missing values go."""

    var: int
    value: float
    send_missing_left: bool = True


class SplittingRule(abc.ABC):
    """Finds the best split of a node."""

    @abc.abstractmethod
    def find_best_split(self, data: TrainingData, samples: Sequence[int],
                        possible_split_vars: Sequence[int],
                        responses_by_sample: np.ndarray) -> Optional[Split]:
        """Return the best split of ``samples``, or None if the node should not split.

        ``responses_by_sample`` is indexed by sample ID, one row per sample of
        the data.
        """


class RelabelingStrategy(abc.ABC):
    """Produces relabelled outcomes on which a node's split is computed."""

    @property
    def response_length(self) -> int:
        """Number of response columns produced for each sample."""
        return 1

    def _blank(self, data: TrainingData) -> np.ndarray:
        return np.full((data.num_rows, self.response_length), np.nan)

    @abc.abstractmethod
    def relabel(self, samples: Sequence[int], data: TrainingData) -> Optional[np.ndarray]:
        """Relabel ``samples``.

        Returns an array of shape ``(data.num_rows, response_length)`` whose rows
        for the given samples hold the new responses (other rows are NaN), or
        None if splitting should stop early.
        """