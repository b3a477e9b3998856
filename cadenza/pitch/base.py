"""Base classes and shared DSP helpers for pitch detection."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional, Tuple

import numpy as np

from ..core import midi_to_note_name
from ..core.constants import (
    A4_FREQUENCY,
    A4_MIDI,
    DEFAULT_BUFFER_SIZE,
    DEFAULT_MAX_FREQUENCY,
    DEFAULT_MIN_FREQUENCY,
    DEFAULT_SR,
)


def cents_between(freq1: float, freq2: float) -> float:
    """Signed distance from freq2 to freq1 in cents (100 cents = 1 semitone)."""
    return 1200.0 * float(np.log2(freq1 / freq2))


@dataclass(frozen=True)
class PitchDetectorConfig:
    """Audio parameters shared by the detectors and the tracker."""

    sample_rate: float = DEFAULT_SR
    buffer_size: int = DEFAULT_BUFFER_SIZE
    min_frequency: float = DEFAULT_MIN_FREQUENCY
    max_frequency: float = DEFAULT_MAX_FREQUENCY


@dataclass(frozen=True)
class PitchEstimate:
    """Result from a single pitch detection algorithm."""

    frequency: float  # Hz
    confidence: float  # 0.0 - 1.0
    algorithm: str

    @property
    def midi_note(self) -> float:
        """Fractional MIDI note number."""
        return A4_MIDI + 12.0 * float(np.log2(self.frequency / A4_FREQUENCY))

    @property
    def nearest_midi_note(self) -> int:
        return int(round(self.midi_note))

    @property
    def cents_deviation(self) -> float:
        """Cents from the nearest note (-50 to +50)."""
        return (self.midi_note - round(self.midi_note)) * 100.0

    @property
    def note_name(self) -> str:
        return midi_to_note_name(self.nearest_midi_note)


@dataclass(frozen=True)
class AggregatePitchEstimate:
    """Consensus of several pitch detection algorithms."""

    frequency: float
    confidence: float
    estimates: Tuple[PitchEstimate, ...] = field(default_factory=tuple)
    consensus_count: int = 0
    total_algorithms: int = 0

    @property
    def has_majority_consensus(self) -> bool:
        return self.consensus_count > self.total_algorithms // 2

    @property
    def consensus_ratio(self) -> float:
        if self.total_algorithms == 0:
            return 0.0
        return self.consensus_count / self.total_algorithms


class PitchDetectionAlgorithm(ABC):
    """Abstract base class for single-buffer pitch detectors."""

    name: str = "Base"

    @abstractmethod
    def detect(
        self,
        samples: np.ndarray,
        sample_rate: float,
        min_frequency: float,
        max_frequency: float,
    ) -> Optional[PitchEstimate]:
        """
        Detect the fundamental frequency of a mono buffer.

        Args:
            samples: Audio samples (mono, normalized float)
            sample_rate: Sample rate in Hz
            min_frequency: Lowest frequency to search, in Hz
            max_frequency: Highest frequency to search, in Hz

        Returns:
            PitchEstimate if a pitch was found, None otherwise
        """
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


# Shared helpers

def as_buffer(samples) -> np.ndarray:
    """Coerce input samples to a 1-D float64 array."""
    return np.asarray(samples, dtype=np.float64).ravel()


def period_range(
    sample_rate: float,
    min_frequency: float,
    max_frequency: float,
    n_samples: int,
) -> Optional[Tuple[int, int]]:
    """
    Lag search range (min_period, max_period) in samples.

    Returns None when the buffer is too short for the frequency floor.
    """
    if min_frequency <= 0 or max_frequency <= min_frequency:
        return None
    min_period = max(1, int(sample_rate / max_frequency))
    max_period = int(sample_rate / min_frequency)
    if max_period >= n_samples:
        return None
    return min_period, max_period


def parabolic_offset(alpha: float, beta: float, gamma: float) -> float:
    """Vertex offset of the parabola through three equally spaced points."""
    denominator = alpha - 2 * beta + gamma
    if abs(denominator) <= 1e-10:
        return 0.0
    return 0.5 * (alpha - gamma) / denominator


def refine_index(values: np.ndarray, index: int) -> float:
    """Sub-sample position of an extremum using parabolic interpolation."""
    if index <= 0 or index >= len(values) - 1:
        return float(index)
    return index + parabolic_offset(
        values[index - 1], values[index], values[index + 1]
    )


def normalized_correlation(samples: np.ndarray, period: int) -> float:
    """Correlation of the signal with itself shifted by `period` samples.

    The window is min(2 * period, n - period) samples long.
    """
    window = min(period * 2, len(samples) - period)
    if window <= 0:
        return 0.0
    head = samples[:window]
    tail = samples[period:period + window]
    norm = np.sqrt(np.dot(head, head) * np.dot(tail, tail))
    if norm <= 0:
        return 0.0
    return float(np.dot(head, tail) / norm)


def next_power_of_two(n: int) -> int:
    power = 1
    while power < n:
        power *= 2
    return power


def magnitude_spectrum(samples: np.ndarray) -> Tuple[np.ndarray, int]:
    """
    Hann-windowed, zero-padded magnitude spectrum.

    Returns:
        Tuple of (magnitudes for bins 0..fft_size/2-1, fft_size)
    """
    fft_size = next_power_of_two(len(samples))
    windowed = samples * np.hanning(len(samples))
    spectrum = np.fft.rfft(windowed, n=fft_size)
    return np.abs(spectrum[: fft_size // 2]), fft_size
