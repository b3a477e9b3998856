"""YAAPT-inspired pitch detection (Zahorian & Hu, 2008).

Combines an energy-based voicing decision with spectral harmonic
correlation, then refines the estimate with a local autocorrelation search.
Well suited to vocal pitch tracking.
"""

import logging
from typing import Optional, Tuple

import numpy as np

from .base import (
    PitchDetectionAlgorithm,
    PitchEstimate,
    as_buffer,
    magnitude_spectrum,
    normalized_correlation,
    period_range,
)

logger = logging.getLogger(__name__)

MIN_FFT_SIZE = 512
MAX_VOICED_FREQUENCY = 1500.0
CANDIDATE_STEP_HZ = 1.0


class YAAPTPitchDetector(PitchDetectionAlgorithm):
    """Spectral harmonic correlation gated by a low-frequency energy ratio."""

    name = "YAAPT"

    def __init__(
        self,
        num_harmonics: int = 10,
        voicing_threshold: float = 0.4,
        shc_threshold: float = 0.3,
    ):
        """
        Initialize YAAPTPitchDetector.

        Args:
            num_harmonics: Harmonics summed by the spectral correlation
            voicing_threshold: Minimum share of energy below 1.5 kHz
            shc_threshold: Minimum normalized spectral harmonic correlation
        """
        self.num_harmonics = num_harmonics
        self.voicing_threshold = voicing_threshold
        self.shc_threshold = shc_threshold

    def detect(
        self,
        samples: np.ndarray,
        sample_rate: float,
        min_frequency: float,
        max_frequency: float,
    ) -> Optional[PitchEstimate]:
        samples = as_buffer(samples)
        if period_range(sample_rate, min_frequency, max_frequency, len(samples)) is None:
            return None

        magnitudes, fft_size = magnitude_spectrum(samples)
        if fft_size < MIN_FFT_SIZE:
            return None
        bin_width = sample_rate / fft_size

        nlfer = self.nlfer(magnitudes, bin_width)
        if nlfer <= self.voicing_threshold:
            logger.debug("YAAPT unvoiced buffer (NLFER %.3f)", nlfer)
            return None

        result = self.spectral_harmonic_correlation(
            magnitudes, bin_width, min_frequency, max_frequency
        )
        if result is None:
            return None
        frequency, shc = result
        if shc <= self.shc_threshold:
            logger.debug("YAAPT SHC %.3f below %.2f", shc, self.shc_threshold)
            return None

        refined = self._refine_with_autocorrelation(samples, sample_rate, frequency)

        return PitchEstimate(
            frequency=refined,
            confidence=float(min(1.0, shc * nlfer)),
            algorithm=self.name,
        )

    @staticmethod
    def nlfer(magnitudes: np.ndarray, bin_width: float) -> float:
        """Normalized low frequency energy ratio (energy below 1.5 kHz / total)."""
        energy = magnitudes * magnitudes
        total = energy.sum()
        if total <= 0:
            return 0.0
        max_bin = min(int(MAX_VOICED_FREQUENCY / bin_width), len(magnitudes))
        return float(energy[:max_bin].sum() / total)

    def spectral_harmonic_correlation(
        self,
        magnitudes: np.ndarray,
        bin_width: float,
        min_frequency: float,
        max_frequency: float,
    ) -> Optional[Tuple[float, float]]:
        """
        Scan F0 candidates at 1 Hz resolution.

        Returns:
            Tuple of (best F0 in Hz, SHC normalized to 0-1), or None
        """
        num_candidates = int((max_frequency - min_frequency) / CANDIDATE_STEP_HZ)
        if num_candidates <= 0:
            return None

        candidates = min_frequency + np.arange(num_candidates) * CANDIDATE_STEP_HZ
        harmonics = np.arange(1, self.num_harmonics + 1)
        weights = 1.0 / harmonics

        bins = (candidates[:, None] * harmonics[None, :] / bin_width).astype(int)
        valid = bins < len(magnitudes)
        values = np.where(valid, magnitudes[np.minimum(bins, len(magnitudes) - 1)], 0.0)
        shc = (values * weights).sum(axis=1)

        best = int(np.argmax(shc))
        if shc[best] <= 0:
            return None

        max_possible = weights.sum() * magnitudes.max()
        normalized = min(1.0, shc[best] / max_possible)
        return float(candidates[best]), float(normalized)

    @staticmethod
    def _refine_with_autocorrelation(
        samples: np.ndarray, sample_rate: float, estimate: float
    ) -> float:
        """Best normalized correlation within +/-10% of the expected period."""
        expected_period = int(sample_rate / estimate)
        radius = max(2, expected_period // 10)
        min_period = max(2, expected_period - radius)
        max_period = min(len(samples) // 2, expected_period + radius)

        best_correlation = -1.0
        best_period = expected_period
        for period in range(min_period, max_period + 1):
            correlation = normalized_correlation(samples, period)
            if correlation > best_correlation:
                best_correlation = correlation
                best_period = period

        return sample_rate / best_period
