"""MIDI export of discrete passages."""

import pretty_midi
from pathlib import Path
from typing import List, Tuple, Union

from ..core.constants import (
    DEFAULT_SUBDIVISION,
    DEFAULT_TEMPO,
    DEFAULT_TEMPO_SUBDIVISION,
)
from ..processing import SnapperConfig, SubdivisionSnapper
from ..rhythm import DiscretePassage, TimeSignature


class PassageMIDIExporter:
    """Export a DiscretePassage to a MIDI file."""

    def __init__(
        self,
        tempo: float = DEFAULT_TEMPO,
        tempo_subdivision: int = DEFAULT_TEMPO_SUBDIVISION,
        subdivision_resolution: int = DEFAULT_SUBDIVISION,
        time_signature: TimeSignature = TimeSignature(4, 4),
        velocity: int = 100,
        instrument_program: int = 115,  # Woodblock
    ):
        """
        Initialize PassageMIDIExporter.

        Args:
            tempo: Tempo in BPM, counted in tempo_subdivision notes
            tempo_subdivision: Note value that gets one beat
            subdivision_resolution: Grid resolution of the passage
            time_signature: Meter written into the file
            velocity: MIDI velocity of every note
            instrument_program: MIDI program number (0-127)
        """
        self.snapper = SubdivisionSnapper(
            SnapperConfig(
                tempo=tempo,
                tempo_subdivision=tempo_subdivision,
                subdivision_resolution=subdivision_resolution,
                time_signature=time_signature,
            )
        )
        self.velocity = velocity
        self.instrument_program = instrument_program

    @property
    def time_signature(self) -> TimeSignature:
        return self.snapper.config.time_signature

    def note_spans(self, passage: DiscretePassage) -> List[Tuple[str, int, int]]:
        """(pitch name, start, length) in grid units; tied parts merged."""
        resolution = self.snapper.config.subdivision_resolution
        per_measure = self.snapper.subdivisions_per_measure

        spans: List[List] = []
        for measure_index, measure in enumerate(passage.measures):
            for element in measure.elements:
                if not element.is_note:
                    continue
                length = element.length(resolution)
                if element.tied_from_previous and spans:
                    spans[-1][2] += length
                    continue
                start = measure_index * per_measure + element.start_subdivision
                spans.append([element.element.pitch_name, start, length])

        return [tuple(span) for span in spans]

    def passage_to_pretty_midi(self, passage: DiscretePassage) -> pretty_midi.PrettyMIDI:
        """Convert a passage to a PrettyMIDI object without saving."""
        # pretty_midi tempo is in quarter notes per minute
        quarter_tempo = self.snapper.config.tempo * 4 / self.snapper.config.tempo_subdivision
        midi = pretty_midi.PrettyMIDI(initial_tempo=quarter_tempo)
        midi.time_signature_changes.append(
            pretty_midi.TimeSignature(
                self.time_signature.numerator, self.time_signature.denominator, 0.0
            )
        )

        instrument = pretty_midi.Instrument(program=self.instrument_program, name="Rhythm")
        unit_seconds = self.snapper.subdivision_duration_ms / 1000.0

        for pitch_name, start, length in self.note_spans(passage):
            instrument.notes.append(
                pretty_midi.Note(
                    velocity=self.velocity,
                    pitch=pretty_midi.note_name_to_number(pitch_name),
                    start=start * unit_seconds,
                    end=(start + length) * unit_seconds,
                )
            )

        midi.instruments.append(instrument)
        return midi

    def export(self, passage: DiscretePassage, output_path: Union[str, Path]) -> None:
        """
        Export a passage to a MIDI file.

        Args:
            passage: Passage to write
            output_path: Path to output MIDI file
        """
        midi = self.passage_to_pretty_midi(passage)

        # Ensure output directory exists
        Path(output_path).parent.mkdir(parents=True, exist_ok=True)

        midi.write(str(output_path))
