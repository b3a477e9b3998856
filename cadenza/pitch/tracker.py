"""Pitch tracking over live buffers and whole signals."""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

import librosa
import numpy as np

from ..core import midi_to_freq, midi_to_note_name
from ..core.constants import A4_FREQUENCY, A4_MIDI, DEFAULT_RMS_THRESHOLD
from .aggregate import create_aggregate_detector
from .base import PitchDetectionAlgorithm, PitchDetectorConfig, as_buffer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PitchReading:
    """A detected pitch with the level of the buffer it came from."""

    frequency: float
    amplitude: float
    confidence: float
    algorithm: str

    @property
    def midi_note(self) -> float:
        return A4_MIDI + 12.0 * float(np.log2(self.frequency / A4_FREQUENCY))

    @property
    def deci_hz(self) -> int:
        """Frequency in tenths of a Hertz."""
        return int(self.frequency * 10)

    @property
    def note_name(self) -> str:
        return midi_to_note_name(int(round(self.midi_note)))

    @property
    def cents_deviation(self) -> float:
        """Cents away from the nearest equal-tempered note."""
        return (self.midi_note - round(self.midi_note)) * 100.0

    @property
    def target_frequency(self) -> float:
        """Frequency of the nearest equal-tempered note."""
        return midi_to_freq(round(self.midi_note))


class PitchTracker:
    """Gate buffers by level, then run a pitch detector on them."""

    def __init__(
        self,
        config: Optional[PitchDetectorConfig] = None,
        detector: Optional[PitchDetectionAlgorithm] = None,
        rms_threshold: float = DEFAULT_RMS_THRESHOLD,
    ):
        """
        Initialize PitchTracker.

        Args:
            config: Sample rate, buffer size and frequency range
            detector: Pitch detector (default: aggregate of all algorithms)
            rms_threshold: Buffers at or below this RMS level are treated as silence
        """
        self.config = config or PitchDetectorConfig()
        self.detector = detector or create_aggregate_detector()
        self.rms_threshold = rms_threshold

    @staticmethod
    def rms(samples: np.ndarray) -> float:
        samples = as_buffer(samples)
        if len(samples) == 0:
            return 0.0
        return float(np.sqrt(np.mean(samples * samples)))

    def process_buffer(self, samples: np.ndarray) -> Optional[PitchReading]:
        """
        Detect the pitch of one buffer.

        Returns:
            PitchReading, or None for silence or no detected pitch
        """
        amplitude = self.rms(samples)
        if amplitude <= self.rms_threshold:
            return None

        estimate = self.detector.detect(
            samples,
            self.config.sample_rate,
            self.config.min_frequency,
            self.config.max_frequency,
        )
        if estimate is None:
            return None

        return PitchReading(
            frequency=estimate.frequency,
            amplitude=amplitude,
            confidence=estimate.confidence,
            algorithm=estimate.algorithm,
        )

    def track(
        self,
        audio: np.ndarray,
        hop_length: Optional[int] = None,
    ) -> List[Tuple[float, PitchReading]]:
        """
        Track pitch frame by frame over a whole signal.

        Args:
            audio: Mono audio at config.sample_rate
            hop_length: Samples between frame starts (default: buffer_size // 2)

        Returns:
            List of (time in seconds, reading) for voiced frames
        """
        audio = as_buffer(audio)
        frame_length = self.config.buffer_size
        hop_length = hop_length or frame_length // 2

        if len(audio) < frame_length:
            audio = np.pad(audio, (0, frame_length - len(audio)))

        frames = librosa.util.frame(audio, frame_length=frame_length, hop_length=hop_length)

        readings = []
        for i in range(frames.shape[1]):
            reading = self.process_buffer(frames[:, i])
            if reading is not None:
                time = i * hop_length / self.config.sample_rate
                readings.append((time, reading))

        logger.debug("Tracked %d voiced frames of %d", len(readings), frames.shape[1])
        return readings
