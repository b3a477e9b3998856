"""Read recorded MIDI performances as note input."""

import warnings
from pathlib import Path
from typing import List, Optional, Union

import pretty_midi

from ..core import RawNote, RawPassage, RawPassageNote, midi_note_to_deci_hz
from .listener import NOTE_END, NOTE_START, NoteInputEvent, NoteInputListener


class MidiPerformanceReader:
    """Turn the notes of a MIDI file into note events or a RawPassage."""

    SUPPORTED_FORMATS = {".mid", ".midi"}

    def __init__(self, instrument_index: Optional[int] = None, include_drums: bool = False):
        """
        Initialize MidiPerformanceReader.

        Args:
            instrument_index: Read only this instrument (default: all of them)
            include_drums: Include drum tracks when reading all instruments
        """
        self.instrument_index = instrument_index
        self.include_drums = include_drums

    def load(self, path: Union[str, Path]) -> pretty_midi.PrettyMIDI:
        """
        Load a MIDI file.

        Raises:
            ValueError: If file format not supported
            FileNotFoundError: If file doesn't exist
        """
        path = Path(path)

        if not path.exists():
            raise FileNotFoundError(f"MIDI file not found: {path}")

        if path.suffix.lower() not in self.SUPPORTED_FORMATS:
            raise ValueError(
                f"Unsupported format: {path.suffix}. "
                f"Supported: {self.SUPPORTED_FORMATS}"
            )

        return pretty_midi.PrettyMIDI(str(path))

    def notes(self, midi: pretty_midi.PrettyMIDI) -> List[pretty_midi.Note]:
        """Selected notes sorted by start time."""
        instruments = midi.instruments
        if self.instrument_index is not None:
            if not 0 <= self.instrument_index < len(instruments):
                raise ValueError(
                    f"Instrument index {self.instrument_index} out of range "
                    f"(file has {len(instruments)})"
                )
            instruments = [instruments[self.instrument_index]]
        else:
            instruments = [i for i in instruments if self.include_drums or not i.is_drum]
            if len(instruments) > 1:
                warnings.warn(
                    f"MIDI file has {len(instruments)} instruments; merging their notes"
                )

        notes = [note for instrument in instruments for note in instrument.notes]
        return sorted(notes, key=lambda n: (n.start, n.pitch))

    def read(self, path: Union[str, Path]) -> List[NoteInputEvent]:
        """
        Note start/end events in time order, timestamps in ms from file start.

        Ends sort before starts at the same timestamp.
        """
        events = []
        for note in self.notes(self.load(path)):
            pitch = midi_note_to_deci_hz(note.pitch)
            events.append(NoteInputEvent(NOTE_START, pitch, int(round(note.start * 1000))))
            events.append(NoteInputEvent(NOTE_END, pitch, int(round(note.end * 1000))))

        return sorted(events, key=lambda e: (e.timestamp_ms, e.kind == NOTE_START))

    def to_raw_passage(self, path: Union[str, Path]) -> RawPassage:
        """
        Build a RawPassage directly, offsets relative to the first note.
        """
        notes = self.notes(self.load(path))
        if not notes:
            return RawPassage()

        origin_ms = int(round(notes[0].start * 1000))
        passage = RawPassage()
        for note in notes:
            start_ms = int(round(note.start * 1000))
            end_ms = int(round(note.end * 1000))
            passage.add_note(
                RawPassageNote(
                    note=RawNote(
                        pitch_deci_hz=midi_note_to_deci_hz(note.pitch),
                        duration_ms=max(0, end_ms - start_ms),
                    ),
                    start_offset_ms=start_ms - origin_ms,
                )
            )
        return passage

    def replay(self, path: Union[str, Path], listener: NoteInputListener) -> RawPassage:
        """Feed the file's events into a listener and return its passage."""
        for event in self.read(path):
            if event.kind == NOTE_START:
                listener.note_started(event.pitch_deci_hz, event.timestamp_ms)
            else:
                listener.note_ended(event.pitch_deci_hz, event.timestamp_ms)
        listener.flush()
        return listener.passage
