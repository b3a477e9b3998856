"""Audio loading for offline pitch detection."""

import numpy as np
import librosa
from pathlib import Path
from typing import Tuple, Optional, Union

from ..core.constants import DEFAULT_SR


class AudioLoader:
    """Loads audio files as mono float buffers at the detector sample rate."""

    SUPPORTED_FORMATS = {".wav", ".mp3", ".flac", ".ogg", ".m4a", ".aiff", ".aif"}

    def __init__(
        self,
        target_sr: int = DEFAULT_SR,
        normalize: bool = True,
    ):
        """
        Initialize AudioLoader.

        Args:
            target_sr: Sample rate the audio is resampled to
            normalize: Peak-normalize to [-1, 1] if True
        """
        self.target_sr = target_sr
        self.normalize = normalize

    def load(self, path: Union[str, Path]) -> Tuple[np.ndarray, int]:
        """
        Load an audio file as mono.

        Args:
            path: Path to audio file

        Returns:
            Tuple of (audio array, sample rate)

        Raises:
            ValueError: If file format not supported
            FileNotFoundError: If file doesn't exist
        """
        path = Path(path)

        if not path.exists():
            raise FileNotFoundError(f"Audio file not found: {path}")

        if path.suffix.lower() not in self.SUPPORTED_FORMATS:
            raise ValueError(
                f"Unsupported format: {path.suffix}. "
                f"Supported: {self.SUPPORTED_FORMATS}"
            )

        audio, sr = librosa.load(str(path), sr=self.target_sr, mono=True)

        if self.normalize:
            audio = self._normalize(audio)

        return audio, sr

    def _normalize(self, audio: np.ndarray) -> np.ndarray:
        peak = np.abs(audio).max() if len(audio) else 0.0
        if peak > 0:
            audio = audio / peak
        return audio

    def trim_silence(self, audio: np.ndarray, top_db: int = 30) -> np.ndarray:
        """Drop leading and trailing audio quieter than top_db below the peak."""
        trimmed, _ = librosa.effects.trim(audio, top_db=top_db)
        return trimmed

    def get_duration(self, audio: np.ndarray, sr: Optional[int] = None) -> float:
        """Get duration in seconds."""
        sr = sr or self.target_sr
        return len(audio) / sr
