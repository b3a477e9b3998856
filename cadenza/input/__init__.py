"""Input layer - Getting a performance into the system.

This layer handles:
- Audio files (for pitch detection)
- Live note on/off events from taps or MIDI devices
- Recorded MIDI performances
"""

from .loader import AudioLoader
from .listener import (
    NoteInputEvent,
    NoteInputListener,
    NoteInputListenerConfig,
    current_timestamp_ms,
)
from .midi import MidiPerformanceReader

__all__ = [
    "AudioLoader",
    "NoteInputEvent",
    "NoteInputListener",
    "NoteInputListenerConfig",
    "current_timestamp_ms",
    "MidiPerformanceReader",
]
