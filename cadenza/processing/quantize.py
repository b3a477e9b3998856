"""Note quantization - Snap raw notes to the subdivision grid."""

import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from ..core import RawPassage
from ..core.constants import (
    DEFAULT_SUBDIVISION,
    DEFAULT_TEMPO,
    DEFAULT_TEMPO_SUBDIVISION,
    RHYTHM_NOTE_NAME,
)
from ..rhythm import (
    DiscreteMeasure,
    DiscreteNote,
    DiscretePassage,
    DiscreteRest,
    MeasureElement,
    TimeSignature,
    check_resolution,
    find_largest_fitting_duration,
)

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for value >= 0."""
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class SnapperConfig:
    """Tempo and grid used to turn milliseconds into subdivisions."""

    tempo: float = DEFAULT_TEMPO  # BPM
    tempo_subdivision: int = DEFAULT_TEMPO_SUBDIVISION  # note value that gets one beat
    subdivision_resolution: int = DEFAULT_SUBDIVISION  # grid resolution
    time_signature: TimeSignature = field(default_factory=TimeSignature)

    def __post_init__(self):
        if self.tempo <= 0:
            raise ValueError(f"Tempo must be positive, got {self.tempo}")
        if self.tempo_subdivision <= 0:
            raise ValueError(
                f"Tempo subdivision must be positive, got {self.tempo_subdivision}"
            )
        check_resolution(self.subdivision_resolution)


class SubdivisionSnapper:
    """Convert between milliseconds and grid units."""

    def __init__(self, config: Optional[SnapperConfig] = None):
        self.config = config or SnapperConfig()

    @property
    def beat_duration_ms(self) -> float:
        """Duration of one beat in milliseconds."""
        return 60000.0 / self.config.tempo

    @property
    def subdivision_duration_ms(self) -> float:
        """Duration of one grid unit in milliseconds."""
        return (
            self.beat_duration_ms
            * self.config.tempo_subdivision
            / self.config.subdivision_resolution
        )

    @property
    def subdivisions_per_measure(self) -> int:
        return self.config.time_signature.subdivisions_per_measure(
            self.config.subdivision_resolution
        )

    def snap_to_subdivisions(self, duration_ms: float, allow_zero: bool = False) -> int:
        """
        Snap a duration to a whole number of grid units.

        Args:
            duration_ms: Duration in milliseconds
            allow_zero: If False, anything shorter than half a unit becomes 1

        Returns:
            Number of grid units
        """
        units = round_half_up(duration_ms / self.subdivision_duration_ms)
        if not allow_zero and units == 0:
            return 1
        return units

    def snap_start_offset(self, offset_ms: float) -> int:
        """Grid position (from passage start) nearest to an offset in ms."""
        return round_half_up(offset_ms / self.subdivision_duration_ms)

    def subdivision_to_ms(self, subdivision: int) -> float:
        return subdivision * self.subdivision_duration_ms


class RawToDiscreteConverter:
    """Quantize a captured RawPassage into a notated DiscretePassage."""

    def __init__(self, snapper: SubdivisionSnapper):
        self.snapper = snapper

    @property
    def resolution(self) -> int:
        return self.snapper.config.subdivision_resolution

    def convert(
        self,
        raw_passage: RawPassage,
        measure_count: int,
        note_name: str = RHYTHM_NOTE_NAME,
    ) -> DiscretePassage:
        """
        Convert raw notes to measures of notes and rests.

        Notes crossing a bar line are split, and the parts after the first
        are marked tied_from_previous. The line is monophonic: a note is cut
        at the next onset, and a note sharing its snapped start with an
        earlier one is dropped. Notes beyond the last measure are dropped.

        Args:
            raw_passage: Captured notes
            measure_count: Number of measures in the result
            note_name: Pitch written for every note

        Returns:
            DiscretePassage whose measures are fully tiled

        Raises:
            ValueError: If measure_count <= 0
        """
        if measure_count <= 0:
            raise ValueError(f"measure_count must be positive, got {measure_count}")

        per_measure = self.snapper.subdivisions_per_measure
        total_units = per_measure * measure_count
        measures: List[List[MeasureElement]] = [[] for _ in range(measure_count)]

        for start, length in self._snap_notes(raw_passage, total_units):
            measure_index, position = divmod(start, per_measure)
            remaining = length
            first_part = True

            while remaining > 0 and measure_index < measure_count:
                part = min(remaining, per_measure - position)
                durations = tuple(self._fit_span(position, part, per_measure))
                measures[measure_index].append(
                    MeasureElement(
                        element=DiscreteNote(pitch_name=note_name, durations=durations),
                        start_subdivision=position,
                        tied_from_previous=not first_part,
                    )
                )
                remaining -= part
                measure_index += 1
                position = 0
                first_part = False

        return DiscretePassage(
            measures=tuple(
                DiscreteMeasure(
                    subdivision_denominator=self.resolution,
                    elements=self._fill_rests(elements, per_measure),
                )
                for elements in measures
            )
        )

    def _snap_notes(self, raw_passage: RawPassage, total_units: int) -> List[Tuple[int, int]]:
        """(start, length) in grid units, overlaps resolved, clipped to the passage."""
        snapped = []
        for raw_note in raw_passage.notes:
            start = self.snapper.snap_start_offset(raw_note.start_offset_ms)
            length = self.snapper.snap_to_subdivisions(raw_note.note.duration_ms)
            if start >= total_units:
                logger.debug("Dropping note at %d ms past the last measure", raw_note.start_offset_ms)
                continue
            if snapped and snapped[-1][0] == start:
                logger.debug("Dropping note sharing onset %d with an earlier note", start)
                continue
            snapped.append((start, length))

        resolved = []
        for i, (start, length) in enumerate(snapped):
            end = start + length
            if i + 1 < len(snapped):
                end = min(end, snapped[i + 1][0])
            end = min(end, total_units)
            resolved.append((start, end - start))
        return resolved

    def _fit_span(self, position: int, span: int, limit: int) -> list:
        """Note values covering span units from position, never past limit."""
        durations = []
        while span > 0 and position < limit:
            available = min(span, limit - position)
            value, count = find_largest_fitting_duration(available, position, self.resolution)
            durations.append(value)
            span -= count
            position += count
        return durations

    def _fill_rests(
        self, elements: List[MeasureElement], per_measure: int
    ) -> Tuple[MeasureElement, ...]:
        """Insert one rest element per fitted value into every gap."""
        filled: List[MeasureElement] = []
        position = 0

        for element in sorted(elements, key=lambda e: e.start_subdivision):
            filled.extend(self._rests_between(position, element.start_subdivision))
            filled.append(element)
            position = element.start_subdivision + element.length(self.resolution)

        filled.extend(self._rests_between(position, per_measure))
        return tuple(filled)

    def _rests_between(self, start: int, end: int) -> List[MeasureElement]:
        rests = []
        position = start
        while position < end:
            value, count = find_largest_fitting_duration(end - position, position, self.resolution)
            rests.append(
                MeasureElement(
                    element=DiscreteRest(durations=(value,)),
                    start_subdivision=position,
                )
            )
            position += count
        return rests
