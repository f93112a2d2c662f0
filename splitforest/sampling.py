"""Cluster-aware random sampling of training samples."""

from __future__ import annotations

import math
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np


class SamplingOptions:
    """How samples are grouped into clusters and how many to draw from each.

    ``clusters`` maps each cluster ID (numbered from 0 in order of first
    appearance) to the sample IDs it contains. It is empty when no clustering
    was requested.
    """

    def __init__(self, samples_per_cluster: int = 0,
                 sample_clusters: Iterable[int] = ()) -> None:
        self.samples_per_cluster = samples_per_cluster
        cluster_ids: dict = {}
        clusters: List[List[int]] = []
        for sample, cluster in enumerate(sample_clusters):
            if cluster not in cluster_ids:
                cluster_ids[cluster] = len(clusters)
                clusters.append([])
            clusters[cluster_ids[cluster]].append(sample)
        self.clusters = clusters

    def __repr__(self) -> str:
        return (f"SamplingOptions(samples_per_cluster={self.samples_per_cluster}, "
                f"num_clusters={len(self.clusters)})")


class RandomSampler:
    """Draws samples, clusters and subsamples from a seeded random generator."""

    def __init__(self, seed: int, options: Optional[SamplingOptions] = None) -> None:
        self.options = options if options is not None else SamplingOptions()
        self._rng = np.random.default_rng(seed)

    def _shuffled(self, values: Sequence[int]) -> List[int]:
        shuffled = list(values)
        self._rng.shuffle(shuffled)
        return shuffled

    def sample_clusters(self, num_rows: int, sample_fraction: float) -> List[int]:
        """Sample cluster IDs, or sample IDs directly when clustering is off."""
        clusters = self.options.clusters
        total = len(clusters) if clusters else num_rows
        return self.sample(total, sample_fraction)

    def sample_from_clusters(self, clusters: Sequence[int]) -> List[int]:
        """Draw up to ``samples_per_cluster`` samples from each given cluster.

        Without clustering the given IDs already are sample IDs and are returned.
        """
        if not self.options.clusters:
            return list(clusters)
        per_cluster = self.options.samples_per_cluster
        samples: List[int] = []
        for cluster in clusters:
            members = self.options.clusters[cluster]
            if len(members) <= per_cluster:
                samples.extend(members)
            else:
                samples.extend(self.subsample_with_size(members, per_cluster))
        return samples

    def get_samples_in_clusters(self, clusters: Sequence[int]) -> List[int]:
        """Return every sample in the given clusters, in cluster order."""
        if not self.options.clusters:
            return list(clusters)
        return [sample for cluster in clusters for sample in self.options.clusters[cluster]]

    def sample(self, num_samples: int, sample_fraction: float) -> List[int]:
        """Return a random selection of ``int(num_samples * sample_fraction)`` IDs."""
        size = int(num_samples * sample_fraction)
        return self._shuffled(range(num_samples))[:size]

    def subsample(self, samples: Sequence[int], sample_fraction: float) -> List[int]:
        """Return a random ``ceil(len * fraction)``-sized subset of ``samples``."""
        size = math.ceil(len(samples) * sample_fraction)
        return self._shuffled(samples)[:size]

    def subsample_with_oob(self, samples: Sequence[int],
                           sample_fraction: float) -> Tuple[List[int], List[int]]:
        """Split ``samples`` randomly into a subsample and the out-of-bag rest."""
        size = math.ceil(len(samples) * sample_fraction)
        if size > len(samples):
            raise ValueError("sample fraction must not exceed 1")
        shuffled = self._shuffled(samples)
        return shuffled[:size], shuffled[size:]

    def subsample_with_size(self, samples: Sequence[int], subsample_size: int) -> List[int]:
        """Return ``subsample_size`` samples drawn without replacement."""
        if subsample_size > len(samples):
            raise ValueError(
                f"cannot draw {subsample_size} samples from {len(samples)}")
        return self._shuffled(samples)[:subsample_size]

    def draw(self, max_value: int, skip: Iterable[int], num_samples: int) -> List[int]:
        """Draw distinct values from ``0 .. max_value - 1`` that are not in ``skip``."""
        skipped = sorted(set(skip))
        if any(value < 0 or value >= max_value for value in skipped):
            raise ValueError("skip values must lie in the range being drawn from")
        if num_samples > max_value - len(skipped):
            raise ValueError(
                f"cannot draw {num_samples} distinct values from "
                f"{max_value - len(skipped)} available")
        if num_samples < max_value // 10:
            return self._draw_simple(max_value, skipped, num_samples)
        return self._draw_fisher_yates(max_value, skipped, num_samples)

    def _draw_simple(self, max_value: int, skipped: List[int], num_samples: int) -> List[int]:
        chosen: set = set()
        result: List[int] = []
        upper = max_value - len(skipped)
        while len(result) < num_samples:
            value = int(self._rng.integers(0, upper))
            for skip_value in skipped:
                if value >= skip_value:
                    value += 1
            if value not in chosen:
                chosen.add(value)
                result.append(value)
        return result

    def _draw_fisher_yates(self, max_value: int, skipped: List[int],
                           num_samples: int) -> List[int]:
        excluded = set(skipped)
        pool = [value for value in range(max_value) if value not in excluded]
        available = len(pool)
        for i in range(num_samples):
            j = int(i + self._rng.random() * (available - i))
            pool[i], pool[j] = pool[j], pool[i]
        return pool[:num_samples]

    def sample_poisson(self, mean: int) -> int:
        """Draw from a Poisson distribution with the given mean."""
        return int(self._rng.poisson(float(mean)))