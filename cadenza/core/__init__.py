"""Core types and constants for Cadenza."""

from .note import (
    RawNote,
    RawPassageNote,
    RawPassage,
    freq_to_midi,
    midi_to_freq,
    midi_to_note_name,
    midi_note_to_deci_hz,
    deci_hz_to_note_name,
)
from .constants import (
    PITCH_NAMES,
    DEFAULT_SR,
    DEFAULT_BUFFER_SIZE,
    DEFAULT_TEMPO,
    RHYTHM_NOTE_NAME,
    RHYTHM_PITCH_DECI_HZ,
)

__all__ = [
    "RawNote",
    "RawPassageNote",
    "RawPassage",
    "freq_to_midi",
    "midi_to_freq",
    "midi_to_note_name",
    "midi_note_to_deci_hz",
    "deci_hz_to_note_name",
    "PITCH_NAMES",
    "DEFAULT_SR",
    "DEFAULT_BUFFER_SIZE",
    "DEFAULT_TEMPO",
    "RHYTHM_NOTE_NAME",
    "RHYTHM_PITCH_DECI_HZ",
]
