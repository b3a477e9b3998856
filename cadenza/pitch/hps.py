"""Harmonic Product Spectrum (HPS) pitch detection.

Frequency-domain method: the magnitude spectrum is multiplied with its
downsampled copies so that all harmonics vote for the fundamental.
Good for harmonic signals with strong overtones.
"""

import logging
from typing import Optional

import numpy as np

from .base import (
    PitchDetectionAlgorithm,
    PitchEstimate,
    as_buffer,
    magnitude_spectrum,
    parabolic_offset,
    period_range,
)

logger = logging.getLogger(__name__)

MIN_FFT_SIZE = 256


class HarmonicProductSpectrumDetector(PitchDetectionAlgorithm):
    """HPS over a peak-normalized, noise-floored magnitude spectrum."""

    name = "HPS"

    def __init__(
        self,
        harmonics: int = 5,
        peak_threshold: float = 3.0,
        noise_floor: float = 1e-3,
        fundamental_floor: float = 0.05,
    ):
        """
        Initialize HarmonicProductSpectrumDetector.

        Args:
            harmonics: Number of spectra in the product (2-5 typical)
            peak_threshold: Minimum ratio of the HPS peak to the HPS mean
            noise_floor: Magnitudes below this fraction of the spectral
                peak are raised to it before multiplying
            fundamental_floor: A candidate bin's own magnitude must reach
                this fraction of the spectral peak
        """
        self.harmonics = harmonics
        self.peak_threshold = peak_threshold
        self.noise_floor = noise_floor
        self.fundamental_floor = fundamental_floor

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

        peak_magnitude = magnitudes.max()
        if peak_magnitude <= 0:
            return None
        normalized = np.maximum(magnitudes / peak_magnitude, self.noise_floor)

        bin_width = sample_rate / fft_size
        min_bin = max(1, int(min_frequency / bin_width))
        max_bin = min(len(magnitudes) // self.harmonics, int(max_frequency / bin_width))
        if max_bin <= min_bin:
            return None

        hps = self.harmonic_product(normalized, max_bin)

        # Peak search only over bins carrying real energy of their own
        search = hps[min_bin:max_bin]
        candidates = normalized[min_bin:max_bin] >= self.fundamental_floor
        if not np.any(candidates):
            return None
        peak_bin = min_bin + int(np.argmax(np.where(candidates, search, 0.0)))
        peak_value = hps[peak_bin]

        mean_value = search.mean()
        if peak_value <= mean_value * self.peak_threshold:
            logger.debug(
                "HPS peak %.3g not prominent over mean %.3g", peak_value, mean_value
            )
            return None

        refined_bin = self._refine_bin(hps, peak_bin)
        confidence = min(1.0, peak_value / (mean_value * self.peak_threshold * 2))

        return PitchEstimate(
            frequency=refined_bin * bin_width,
            confidence=float(confidence),
            algorithm=self.name,
        )

    def harmonic_product(self, magnitudes: np.ndarray, max_bin: int) -> np.ndarray:
        """Product of magnitudes at bin * h for h = 1..harmonics."""
        bins = np.arange(max_bin)
        hps = np.ones(max_bin)
        for h in range(1, self.harmonics + 1):
            harmonic_bins = bins * h
            valid = harmonic_bins < len(magnitudes)
            hps[valid] *= magnitudes[harmonic_bins[valid]]
        return hps

    @staticmethod
    def _refine_bin(hps: np.ndarray, peak_bin: int) -> float:
        """Parabolic interpolation in the log domain."""
        if peak_bin <= 0 or peak_bin >= len(hps) - 1:
            return float(peak_bin)
        alpha, beta, gamma = np.log(hps[peak_bin - 1:peak_bin + 2])
        return peak_bin + parabolic_offset(alpha, beta, gamma)
