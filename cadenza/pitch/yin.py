"""YIN pitch detection (de Cheveigne & Kawahara, 2002).

Uses the cumulative mean normalized difference function (CMNDF) to reduce
the octave errors of plain autocorrelation.
"""

import logging
from typing import Optional

import numpy as np

from .base import (
    PitchDetectionAlgorithm,
    PitchEstimate,
    as_buffer,
    period_range,
    refine_index,
)

logger = logging.getLogger(__name__)


class YINPitchDetector(PitchDetectionAlgorithm):
    """YIN: first CMNDF dip below an absolute threshold."""

    name = "YIN"

    def __init__(self, threshold: float = 0.15):
        """
        Initialize YINPitchDetector.

        Args:
            threshold: CMNDF threshold (0.10-0.15 typical). Lower values
                are more selective.
        """
        self.threshold = threshold

    def detect(
        self,
        samples: np.ndarray,
        sample_rate: float,
        min_frequency: float,
        max_frequency: float,
    ) -> Optional[PitchEstimate]:
        samples = as_buffer(samples)
        n = len(samples)
        periods = period_range(sample_rate, min_frequency, max_frequency, n)
        if periods is None:
            return None
        min_period, max_period = periods
        max_period = min(max_period, n // 2)

        # The comparison window needs at least max_period samples
        if max_period <= min_period or max_period >= n / 2:
            return None

        difference = self.difference_function(samples, max_period)
        cmndf = self.cumulative_mean_normalized_difference(difference)

        period = self._find_period(cmndf, min_period, max_period)
        if period is None:
            logger.debug("YIN found no CMNDF dip below %.2f", self.threshold)
            return None

        refined_period = refine_index(cmndf, period)
        confidence = float(np.clip(1.0 - cmndf[period], 0.0, 1.0))

        return PitchEstimate(
            frequency=sample_rate / refined_period,
            confidence=confidence,
            algorithm=self.name,
        )

    @staticmethod
    def difference_function(samples: np.ndarray, max_period: int) -> np.ndarray:
        """d(tau) = sum_j (x[j] - x[j + tau])^2 over a fixed window."""
        window = len(samples) - max_period
        head = samples[:window]
        difference = np.zeros(max_period + 1)
        for tau in range(1, max_period + 1):
            delta = head - samples[tau:tau + window]
            difference[tau] = np.dot(delta, delta)
        return difference

    @staticmethod
    def cumulative_mean_normalized_difference(difference: np.ndarray) -> np.ndarray:
        """d'(tau) = d(tau) * tau / sum_{j<=tau} d(j), with d'(0) = 1."""
        cmndf = np.ones_like(difference)
        running_sum = np.cumsum(difference[1:])
        taus = np.arange(1, len(difference))
        with np.errstate(divide="ignore", invalid="ignore"):
            values = difference[1:] * taus / running_sum
        cmndf[1:] = np.where(running_sum > 0, values, 1.0)
        return cmndf

    def _find_period(
        self, cmndf: np.ndarray, min_period: int, max_period: int
    ) -> Optional[int]:
        """First dip below threshold, walked down to its local minimum."""
        tau = min_period
        while tau < max_period:
            if cmndf[tau] < self.threshold:
                while tau + 1 < max_period and cmndf[tau + 1] < cmndf[tau]:
                    tau += 1
                return tau
            tau += 1

        # No dip below threshold: accept the global minimum if reasonably low
        search = cmndf[min_period:max_period]
        min_index = int(np.argmin(search))
        if search[min_index] >= 0.5:
            return None
        return min_period + min_index
