"""Raw note data classes - the performer's unquantized input."""

import bisect
from dataclasses import dataclass, field
from typing import List

import numpy as np

from .constants import A4_FREQUENCY, A4_MIDI, MIDI_MAX, MIDI_MIN, PITCH_NAMES


def freq_to_midi(freq: float) -> int:
    """Convert frequency (Hz) to the nearest MIDI pitch."""
    if freq <= 0:
        return 0
    return int(round(A4_MIDI + 12 * np.log2(freq / A4_FREQUENCY)))


def midi_to_freq(midi: float) -> float:
    """Convert MIDI pitch to frequency (Hz)."""
    return A4_FREQUENCY * (2 ** ((midi - A4_MIDI) / 12.0))


def midi_to_note_name(midi: int) -> str:
    """Get note name (e.g., 'C4', 'A#3') for a MIDI pitch."""
    midi = max(MIDI_MIN, min(MIDI_MAX, midi))
    octave = (midi // 12) - 1
    return f"{PITCH_NAMES[midi % 12]}{octave}"


def midi_note_to_deci_hz(midi: int) -> int:
    """Convert a MIDI note number to tenths of a Hertz.

    A4 (69) -> 4400, B4 (71) -> 4938.
    """
    return int(midi_to_freq(midi) * 10)


def deci_hz_to_note_name(deci_hz: int) -> str:
    """Name of the note nearest to a pitch given in deci-Hz."""
    return midi_to_note_name(freq_to_midi(deci_hz / 10.0))


@dataclass(frozen=True)
class RawNote:
    """A note with continuous pitch and duration, as captured.

    Pitch is stored in deci-Hz (Hz * 10) for integer precision:
    A4 = 4400, A0 = 275, C8 = 41860.
    """

    pitch_deci_hz: int
    duration_ms: int

    @property
    def frequency(self) -> float:
        """Pitch in Hz."""
        return self.pitch_deci_hz / 10.0

    @property
    def note_name(self) -> str:
        return deci_hz_to_note_name(self.pitch_deci_hz)


@dataclass(frozen=True)
class RawPassageNote:
    """A raw note with its start offset (ms) from the passage start."""

    note: RawNote
    start_offset_ms: int

    @property
    def end_offset_ms(self) -> int:
        return self.start_offset_ms + self.note.duration_ms


@dataclass
class RawPassage:
    """Notes played during one practice attempt, ordered by start offset."""

    notes: List[RawPassageNote] = field(default_factory=list)

    def __post_init__(self):
        self.notes = sorted(self.notes, key=lambda n: n.start_offset_ms)

    def __len__(self) -> int:
        return len(self.notes)

    def add_note(self, note: RawPassageNote) -> None:
        """Append a completed note, keeping the start-offset order."""
        keys = [n.start_offset_ms for n in self.notes]
        index = bisect.bisect_right(keys, note.start_offset_ms)
        self.notes.insert(index, note)

    def clear(self) -> None:
        self.notes.clear()

    def copy(self) -> "RawPassage":
        return RawPassage(notes=list(self.notes))

    @property
    def duration_ms(self) -> int:
        """Time from passage start to the end of the last sounding note."""
        if not self.notes:
            return 0
        return max(n.end_offset_ms for n in self.notes)

    def to_dict(self) -> dict:
        return {
            "notes": [
                {
                    "note": {
                        "pitchDeciHz": n.note.pitch_deci_hz,
                        "durationMs": n.note.duration_ms,
                    },
                    "startOffsetMs": n.start_offset_ms,
                }
                for n in self.notes
            ]
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RawPassage":
        try:
            notes = [
                RawPassageNote(
                    note=RawNote(
                        pitch_deci_hz=int(item["note"]["pitchDeciHz"]),
                        duration_ms=int(item["note"]["durationMs"]),
                    ),
                    start_offset_ms=int(item["startOffsetMs"]),
                )
                for item in data["notes"]
            ]
        except (KeyError, TypeError) as e:
            raise ValueError(f"Invalid raw passage data: {e}") from e
        return cls(notes=notes)
