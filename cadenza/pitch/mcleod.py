"""McLeod Pitch Method (MPM), "A Smarter Way to Find Pitch" (2005).

Uses the normalized square difference function (NSDF) and key maxima
picking. Well suited to real-time musical pitch detection.
"""

import logging
from typing import List, Optional, Tuple

import numpy as np

from .base import (
    PitchDetectionAlgorithm,
    PitchEstimate,
    as_buffer,
    period_range,
    refine_index,
)

logger = logging.getLogger(__name__)


class McLeodPitchDetector(PitchDetectionAlgorithm):
    """MPM: first key maximum within `cutoff` of the highest one."""

    name = "McLeod"

    def __init__(self, cutoff: float = 0.93, small_cutoff: float = 0.5):
        """
        Initialize McLeodPitchDetector.

        Args:
            cutoff: Fraction of the highest key maximum a peak must reach
                to be selected (0.8-0.95 typical)
            small_cutoff: Minimum NSDF value of the highest key maximum
        """
        self.cutoff = cutoff
        self.small_cutoff = small_cutoff

    def detect(
        self,
        samples: np.ndarray,
        sample_rate: float,
        min_frequency: float,
        max_frequency: float,
    ) -> Optional[PitchEstimate]:
        samples = as_buffer(samples)
        periods = period_range(sample_rate, min_frequency, max_frequency, len(samples))
        if periods is None:
            return None
        min_period, max_period = periods
        max_period = min(max_period, len(samples) // 2)
        if max_period <= min_period:
            return None

        nsdf = self.nsdf(samples, max_period)
        key_maxima = self.key_maxima(nsdf, min_period, max_period)
        if not key_maxima:
            return None

        highest = max(value for _, value in key_maxima)
        if highest < self.small_cutoff:
            logger.debug("McLeod highest NSDF peak %.3f below %.2f", highest, self.small_cutoff)
            return None

        threshold = self.cutoff * highest
        index, value = next((i, v) for i, v in key_maxima if v >= threshold)

        refined_period = refine_index(nsdf, index)
        if refined_period <= 0:
            return None

        return PitchEstimate(
            frequency=sample_rate / refined_period,
            confidence=float(min(1.0, value)),
            algorithm=self.name,
        )

    @staticmethod
    def nsdf(samples: np.ndarray, max_period: int) -> np.ndarray:
        """NSDF(tau) = 2 * r(tau) / (m(0) + m(tau)) for tau in 0..max_period."""
        n = len(samples)
        cumulative = np.concatenate(([0.0], np.cumsum(samples * samples)))
        nsdf = np.zeros(max_period + 1)

        for tau in range(max_period + 1):
            window = n - tau
            acf = np.dot(samples[:window], samples[tau:])
            m0 = cumulative[window]
            m_tau = cumulative[n] - cumulative[tau]
            denominator = m0 + m_tau
            if denominator > 0:
                nsdf[tau] = 2.0 * acf / denominator

        return nsdf

    @staticmethod
    def key_maxima(
        nsdf: np.ndarray, min_period: int, max_period: int
    ) -> List[Tuple[int, float]]:
        """Largest value of each positive NSDF region, in lag order."""
        maxima = []
        # Skip the tail of the lag-0 lobe: regions open only after a zero crossing
        crossed_zero = False
        positive = False
        max_index = 0
        max_value = 0.0

        for i in range(min_period, max_period + 1):
            value = nsdf[i]
            if value <= 0:
                crossed_zero = True
            if value > 0 and crossed_zero:
                if not positive:
                    positive = True
                    max_index, max_value = i, value
                elif value > max_value:
                    max_index, max_value = i, value
            elif positive:
                maxima.append((max_index, float(max_value)))
                positive = False
                max_value = 0.0

        # Region still open at the end of the search range
        if positive and max_value > 0:
            maxima.append((max_index, float(max_value)))

        return maxima
