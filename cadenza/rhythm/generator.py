"""Random rhythm passage generation for practice."""

import logging
import random
from typing import List, Optional

from ..core.constants import RHYTHM_NOTE_NAME
from .durations import check_resolution, decompose_span
from .notation import (
    DiscreteMeasure,
    DiscreteNote,
    DiscretePassage,
    DiscreteRest,
    MeasureElement,
    TimeSignature,
)

logger = logging.getLogger(__name__)


class PassageGenerator:
    """Generate random, properly notated rhythm passages."""

    def __init__(self, rng: Optional[random.Random] = None, note_name: str = RHYTHM_NOTE_NAME):
        """
        Initialize PassageGenerator.

        Args:
            rng: Random source (pass a seeded random.Random for repeatable output)
            note_name: Pitch written for every note
        """
        self.rng = rng or random.Random()
        self.note_name = note_name

    def generate_passage(
        self,
        measure_count: int,
        time_signature: TimeSignature,
        smallest_subdivision: int,
    ) -> DiscretePassage:
        """
        Generate a passage.

        The passage never starts with a rest and never ends with one.

        Args:
            measure_count: Number of measures
            time_signature: Meter of every measure
            smallest_subdivision: Grid resolution (4, 8, 16 or 32 typical)

        Returns:
            DiscretePassage

        Raises:
            ValueError: If measure_count <= 0 or the resolution is unsupported
        """
        if measure_count <= 0:
            raise ValueError(f"measure_count must be positive, got {measure_count}")
        check_resolution(smallest_subdivision)
        units = time_signature.subdivisions_per_measure(smallest_subdivision)
        if units <= 0:
            raise ValueError(
                f"Resolution {smallest_subdivision} is too coarse for {time_signature}"
            )

        measures = tuple(
            self._generate_measure(index, measure_count, units, smallest_subdivision)
            for index in range(measure_count)
        )
        return DiscretePassage(measures=measures)

    def _generate_measure(
        self,
        measure_index: int,
        measure_count: int,
        units: int,
        resolution: int,
    ) -> DiscreteMeasure:
        elements: List[MeasureElement] = []
        position = 0

        while position < units:
            span = self.rng.randint(1, units - position)
            wants_rest = self.rng.random() < 0.5

            at_passage_start = measure_index == 0 and position == 0
            at_passage_end = measure_index == measure_count - 1 and position + span == units

            durations = tuple(decompose_span(span, position, resolution))
            if wants_rest and not at_passage_start and not at_passage_end:
                element = DiscreteRest(durations=durations)
            else:
                element = DiscreteNote(pitch_name=self.note_name, durations=durations)

            elements.append(MeasureElement(element=element, start_subdivision=position))
            position += span

        if all(e.is_rest for e in elements):
            logger.debug("Measure %d is all rests, collapsing", measure_index)
            whole_rest = DiscreteRest(durations=tuple(decompose_span(units, 0, resolution)))
            elements = [MeasureElement(element=whole_rest, start_subdivision=0)]

        return DiscreteMeasure(subdivision_denominator=resolution, elements=tuple(elements))
