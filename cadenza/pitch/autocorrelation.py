"""Pitch detection using normalized autocorrelation.

Simple and fast, but prone to octave errors with some timbres.
"""

import logging
from typing import Optional

import numpy as np

from .base import (
    PitchDetectionAlgorithm,
    PitchEstimate,
    as_buffer,
    normalized_correlation,
    parabolic_offset,
    period_range,
)

logger = logging.getLogger(__name__)


class AutocorrelationPitchDetector(PitchDetectionAlgorithm):
    """Picks the lag with the highest normalized self-correlation."""

    name = "Autocorrelation"

    def __init__(self, correlation_threshold: float = 0.8):
        """
        Initialize AutocorrelationPitchDetector.

        Args:
            correlation_threshold: Minimum normalized correlation (0-1)
                required to report a pitch
        """
        self.correlation_threshold = correlation_threshold

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

        best_correlation = 0.0
        best_period = 0
        for period in range(min_period, max_period):
            correlation = normalized_correlation(samples, period)
            if correlation > best_correlation:
                best_correlation = correlation
                best_period = period

        if best_period == 0 or best_correlation <= self.correlation_threshold:
            logger.debug(
                "Autocorrelation rejected buffer (best correlation %.3f)",
                best_correlation,
            )
            return None

        refined_period = self._refine_period(samples, best_period, min_period, max_period)

        return PitchEstimate(
            frequency=sample_rate / refined_period,
            confidence=min(1.0, best_correlation),
            algorithm=self.name,
        )

    def _refine_period(
        self,
        samples: np.ndarray,
        period: int,
        min_period: int,
        max_period: int,
    ) -> float:
        """Parabolic interpolation over the correlations around `period`."""
        if not (min_period < period < max_period - 1):
            return float(period)

        alpha, beta, gamma = (
            normalized_correlation(samples, p) for p in (period - 1, period, period + 1)
        )
        return period + parabolic_offset(alpha, beta, gamma)
