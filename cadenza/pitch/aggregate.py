"""Consensus voting across several pitch detection algorithms.

All detectors run concurrently over the same buffer. Their estimates are
grouped by pitch proximity (in cents) and the largest group decides the
result, so a single algorithm's octave error is outvoted.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from .autocorrelation import AutocorrelationPitchDetector
from .base import (
    AggregatePitchEstimate,
    PitchDetectionAlgorithm,
    PitchEstimate,
    as_buffer,
    cents_between,
)
from .hps import HarmonicProductSpectrumDetector
from .mcleod import McLeodPitchDetector
from .yaapt import YAAPTPitchDetector
from .yin import YINPitchDetector

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AggregateDetectorConfig:
    """Consensus rules for AggregatePitchDetector."""

    cents_tolerance: float = 50.0
    minimum_consensus: int = 2
    require_majority: bool = True


class AggregatePitchDetector(PitchDetectionAlgorithm):
    """Runs every algorithm in parallel and votes on the result."""

    name = "Aggregate"

    def __init__(
        self,
        algorithms: Optional[Sequence[PitchDetectionAlgorithm]] = None,
        config: Optional[AggregateDetectorConfig] = None,
        max_workers: Optional[int] = None,
    ):
        """
        Initialize AggregatePitchDetector.

        Args:
            algorithms: Detectors to combine (default: all five)
            config: Consensus rules
            max_workers: Thread pool size (default: one per algorithm)
        """
        self.algorithms = list(algorithms) if algorithms is not None else create_all_algorithms()
        self.config = config or AggregateDetectorConfig()
        self.max_workers = max_workers

    def detect(
        self,
        samples: np.ndarray,
        sample_rate: float,
        min_frequency: float,
        max_frequency: float,
    ) -> Optional[PitchEstimate]:
        result = self.detect_with_details(samples, sample_rate, min_frequency, max_frequency)
        if result is None:
            return None
        return PitchEstimate(
            frequency=result.frequency,
            confidence=result.confidence,
            algorithm=self.name,
        )

    def detect_with_details(
        self,
        samples: np.ndarray,
        sample_rate: float,
        min_frequency: float,
        max_frequency: float,
    ) -> Optional[AggregatePitchEstimate]:
        """
        Like detect(), but keeps the individual estimates and vote counts.

        Returns:
            AggregatePitchEstimate, or None without a consensus
        """
        samples = as_buffer(samples)
        total = len(self.algorithms)
        if total == 0:
            return None

        estimates = self._run_all(samples, sample_rate, min_frequency, max_frequency)
        valid = [e for e in estimates if e is not None]

        if len(valid) < self.config.minimum_consensus:
            logger.debug("Only %d of %d algorithms found a pitch", len(valid), total)
            return None

        best_group = max(self.group_estimates(valid), key=len)
        consensus_count = len(best_group)

        if consensus_count < self.config.minimum_consensus:
            logger.debug("Largest group has %d members, no consensus", consensus_count)
            return None
        if self.config.require_majority and consensus_count <= total // 2:
            logger.debug("No majority: %d of %d algorithms agree", consensus_count, total)
            return None

        frequency = self.weighted_median(best_group)
        average_confidence = sum(e.confidence for e in best_group) / consensus_count
        confidence = average_confidence * (0.5 + 0.5 * consensus_count / total)

        return AggregatePitchEstimate(
            frequency=frequency,
            confidence=confidence,
            estimates=tuple(best_group),
            consensus_count=consensus_count,
            total_algorithms=total,
        )

    def _run_all(
        self,
        samples: np.ndarray,
        sample_rate: float,
        min_frequency: float,
        max_frequency: float,
    ) -> List[Optional[PitchEstimate]]:
        """Run every algorithm on the shared buffer and wait for all of them."""
        results: List[Optional[PitchEstimate]] = [None] * len(self.algorithms)
        lock = threading.Lock()

        def run(index: int, algorithm: PitchDetectionAlgorithm) -> None:
            estimate = algorithm.detect(samples, sample_rate, min_frequency, max_frequency)
            with lock:
                results[index] = estimate

        workers = self.max_workers or len(self.algorithms)
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [
                executor.submit(run, i, algorithm)
                for i, algorithm in enumerate(self.algorithms)
            ]
            for future in futures:
                future.result()

        return results

    def group_estimates(self, estimates: Sequence[PitchEstimate]) -> List[List[PitchEstimate]]:
        """Single-linkage grouping: join the first group with any member in tolerance."""
        groups: List[List[PitchEstimate]] = []
        for estimate in estimates:
            for group in groups:
                if any(
                    abs(cents_between(estimate.frequency, member.frequency))
                    <= self.config.cents_tolerance
                    for member in group
                ):
                    group.append(estimate)
                    break
            else:
                groups.append([estimate])
        return groups

    @staticmethod
    def weighted_median(estimates: Sequence[PitchEstimate]) -> float:
        """Frequency at which the cumulative confidence reaches half the total."""
        ordered = sorted(estimates, key=lambda e: e.frequency)
        total_weight = sum(e.confidence for e in ordered)
        if total_weight <= 0:
            return ordered[len(ordered) // 2].frequency

        cumulative = 0.0
        for estimate in ordered:
            cumulative += estimate.confidence
            if cumulative >= total_weight / 2:
                return estimate.frequency
        return ordered[-1].frequency

    def __repr__(self) -> str:
        names = ", ".join(a.name for a in self.algorithms)
        return f"AggregatePitchDetector([{names}])"


# Factory

_ALGORITHMS = {
    "autocorrelation": AutocorrelationPitchDetector,
    "yin": YINPitchDetector,
    "mcleod": McLeodPitchDetector,
    "mpm": McLeodPitchDetector,
    "hps": HarmonicProductSpectrumDetector,
    "yaapt": YAAPTPitchDetector,
}


def create_all_algorithms() -> List[PitchDetectionAlgorithm]:
    """One instance of every algorithm, with default parameters."""
    return [
        AutocorrelationPitchDetector(),
        YINPitchDetector(),
        McLeodPitchDetector(),
        HarmonicProductSpectrumDetector(),
        YAAPTPitchDetector(),
    ]


def create_aggregate_detector(
    cents_tolerance: float = 50.0,
    minimum_consensus: int = 2,
    require_majority: bool = True,
) -> AggregatePitchDetector:
    config = AggregateDetectorConfig(
        cents_tolerance=cents_tolerance,
        minimum_consensus=minimum_consensus,
        require_majority=require_majority,
    )
    return AggregatePitchDetector(create_all_algorithms(), config)


def create_algorithm(name: str) -> Optional[PitchDetectionAlgorithm]:
    """
    Look up an algorithm by name (case-insensitive).

    Args:
        name: autocorrelation, yin, mcleod/mpm, hps, yaapt or aggregate

    Returns:
        A new detector, or None for an unknown name
    """
    key = name.strip().lower()
    if key == "aggregate":
        return create_aggregate_detector()
    algorithm_class = _ALGORITHMS.get(key)
    if algorithm_class is None:
        return None
    return algorithm_class()


def available_algorithms() -> List[str]:
    return sorted(set(_ALGORITHMS) | {"aggregate"})
