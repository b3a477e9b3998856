"""Evaluators for assessing how accurately a passage was played.

They operate on raw notes so that timing feedback is finer than the
notation grid.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Set

from ..core import RawNote, RawPassage, RawPassageNote
from ..core.constants import (
    DEFAULT_CHORD_TOLERANCE_MS,
    DEFAULT_SUBDIVISION,
    DEFAULT_TEMPO,
    DEFAULT_TEMPO_SUBDIVISION,
    RHYTHM_PITCH_DECI_HZ,
)
from ..rhythm import DiscretePassage, TimeSignature

logger = logging.getLogger(__name__)

MISSED_NOTES = "Missed notes"
EXTRA_NOTES = "Extra notes"


@dataclass(frozen=True)
class EvaluationContext:
    """Tempo and grid against which timing is judged."""

    tempo: float = DEFAULT_TEMPO
    tempo_subdivision: int = DEFAULT_TEMPO_SUBDIVISION
    subdivision_resolution: int = DEFAULT_SUBDIVISION

    def __post_init__(self):
        if self.tempo <= 0:
            raise ValueError(f"Tempo must be positive, got {self.tempo}")
        if self.tempo_subdivision <= 0 or self.subdivision_resolution <= 0:
            raise ValueError("Subdivisions must be positive")

    @property
    def subdivision_duration_ms(self) -> float:
        """Duration of one grid unit in milliseconds."""
        beat_duration_ms = 60000.0 / self.tempo
        return beat_duration_ms * self.tempo_subdivision / self.subdivision_resolution


@dataclass(frozen=True)
class Thresholds:
    """Timing bands as fractions of a subdivision, with their penalties.

    - under no_penalty_fraction: no penalty
    - under slight_penalty_fraction: slight_penalty
    - under moderate_penalty_fraction: moderate_penalty
    - otherwise: severe_penalty
    """

    no_penalty_fraction: float = 0.5
    slight_penalty_fraction: float = 1.0
    moderate_penalty_fraction: float = 2.0
    slight_penalty: float = 0.2
    moderate_penalty: float = 0.5
    severe_penalty: float = 1.0


class NoteCritique(Enum):
    SLIGHTLY_EARLY = "Slightly early"
    SLIGHTLY_LATE = "Slightly late"
    MODERATELY_EARLY = "Moderately early"
    MODERATELY_LATE = "Moderately late"
    SEVERELY_EARLY = "Severely early"
    SEVERELY_LATE = "Severely late"

    @property
    def description(self) -> str:
        return self.value


@dataclass
class VectorEvaluation:
    """Score for one aspect of a performance."""

    score: float  # 0.0 - 1.0
    note_critiques: Dict[int, NoteCritique] = field(default_factory=dict)  # by actual note index
    passage_critiques: Set[str] = field(default_factory=set)


@dataclass(frozen=True)
class RhythmEntity:
    """A single onset or a chord: notes starting together."""

    start_time: int
    note_indices: List[int]

    @property
    def note_count(self) -> int:
        return len(self.note_indices)


def group_rhythm_entities(
    notes: Sequence[RawPassageNote], tolerance_ms: float
) -> List[RhythmEntity]:
    """
    Group notes into rhythm entities, sorted by start time.

    A note joins the current entity when it starts within tolerance_ms of
    the entity's first note.
    """
    ordered = sorted(enumerate(notes), key=lambda item: item[1].start_offset_ms)

    entities: List[RhythmEntity] = []
    group: List[int] = []
    group_start: Optional[int] = None

    for index, note in ordered:
        if group_start is not None and abs(note.start_offset_ms - group_start) <= tolerance_ms:
            group.append(index)
            continue
        if group_start is not None:
            entities.append(RhythmEntity(start_time=group_start, note_indices=group))
        group = [index]
        group_start = note.start_offset_ms

    if group_start is not None:
        entities.append(RhythmEntity(start_time=group_start, note_indices=group))

    return entities


class StartTimeEvaluator:
    """Scores the timing of note onsets, treating chords as one entity."""

    def __init__(
        self,
        thresholds: Optional[Thresholds] = None,
        chord_tolerance_ms: float = DEFAULT_CHORD_TOLERANCE_MS,
    ):
        """
        Initialize StartTimeEvaluator.

        Args:
            thresholds: Timing bands and penalties
            chord_tolerance_ms: Played notes this close together count as one chord
        """
        self.thresholds = thresholds or Thresholds()
        self.chord_tolerance_ms = chord_tolerance_ms

    def evaluate(
        self,
        expected: RawPassage,
        actual: RawPassage,
        context: EvaluationContext,
    ) -> VectorEvaluation:
        """
        Compare played onsets against expected ones.

        Args:
            expected: Onsets derived from the written passage
            actual: Onsets as played
            context: Tempo and grid

        Returns:
            VectorEvaluation with a score in [0, 1]
        """
        expected_entities = group_rhythm_entities(expected.notes, 0)
        actual_entities = group_rhythm_entities(actual.notes, self.chord_tolerance_ms)

        passage_critiques: Set[str] = set()
        note_critiques: Dict[int, NoteCritique] = {}

        measure_penalty = 1.0
        if len(actual_entities) < len(expected_entities):
            passage_critiques.add(MISSED_NOTES)
            measure_penalty = len(actual_entities) / len(expected_entities)
        elif len(actual_entities) > len(expected_entities):
            passage_critiques.add(EXTRA_NOTES)
            measure_penalty = len(expected_entities) / len(actual_entities)

        if not expected_entities:
            return VectorEvaluation(
                score=1.0 if not actual_entities else 0.0,
                passage_critiques=passage_critiques,
            )

        score_per_entity = 1.0 / len(expected_entities)
        subdivision_ms = context.subdivision_duration_ms
        score = 0.0

        for expected_entity, actual_entity in zip(expected_entities, actual_entities):
            distance = abs(actual_entity.start_time - expected_entity.start_time)
            is_early = actual_entity.start_time < expected_entity.start_time

            penalty, critique = self._classify(distance, subdivision_ms, is_early)
            if critique is not None:
                for note_index in actual_entity.note_indices:
                    note_critiques[note_index] = critique

            score += score_per_entity * (1.0 - penalty)

        logger.debug(
            "Start time score %.3f (%d expected, %d played entities)",
            score * measure_penalty,
            len(expected_entities),
            len(actual_entities),
        )
        return VectorEvaluation(
            score=score * measure_penalty,
            note_critiques=note_critiques,
            passage_critiques=passage_critiques,
        )

    def _classify(self, distance: float, subdivision_ms: float, is_early: bool):
        """Penalty and critique for an onset error of `distance` ms."""
        t = self.thresholds
        if distance < subdivision_ms * t.no_penalty_fraction:
            return 0.0, None
        if distance < subdivision_ms * t.slight_penalty_fraction:
            critique = NoteCritique.SLIGHTLY_EARLY if is_early else NoteCritique.SLIGHTLY_LATE
            return t.slight_penalty, critique
        if distance < subdivision_ms * t.moderate_penalty_fraction:
            critique = NoteCritique.MODERATELY_EARLY if is_early else NoteCritique.MODERATELY_LATE
            return t.moderate_penalty, critique
        critique = NoteCritique.SEVERELY_EARLY if is_early else NoteCritique.SEVERELY_LATE
        return t.severe_penalty, critique


@dataclass
class EvaluationResult:
    """Evaluation of every aspect of a performance."""

    rhythm_evaluation: VectorEvaluation

    @property
    def rhythm_score(self) -> float:
        return self.rhythm_evaluation.score

    def to_dict(self) -> dict:
        return {
            "rhythmScore": self.rhythm_score,
            "noteCritiques": {
                str(index): critique.description
                for index, critique in sorted(self.rhythm_evaluation.note_critiques.items())
            },
            "passageCritiques": sorted(self.rhythm_evaluation.passage_critiques),
        }


class PassageEvaluator:
    """Evaluate a played RawPassage against a written DiscretePassage."""

    def __init__(
        self,
        context: EvaluationContext,
        thresholds: Optional[Thresholds] = None,
        chord_tolerance_ms: float = DEFAULT_CHORD_TOLERANCE_MS,
    ):
        self.context = context
        self.start_time_evaluator = StartTimeEvaluator(thresholds, chord_tolerance_ms)

    def discrete_to_raw_passage(
        self, passage: DiscretePassage, time_signature: TimeSignature
    ) -> RawPassage:
        """
        Expected onsets and durations of a written passage.

        Rests produce nothing. A note tied from the previous measure extends
        the preceding note instead of adding an onset.
        """
        resolution = self.context.subdivision_resolution
        per_measure = time_signature.subdivisions_per_measure(resolution)
        subdivision_ms = self.context.subdivision_duration_ms

        spans: List[List[int]] = []  # [start, length] in grid units
        for measure_index, measure in enumerate(passage.measures):
            for element in measure.elements:
                if not element.is_note:
                    continue
                length = element.element.total_subdivision_duration(resolution)
                if element.tied_from_previous and spans:
                    spans[-1][1] += length
                    continue
                start = measure_index * per_measure + element.start_subdivision
                spans.append([start, length])

        notes = [
            RawPassageNote(
                note=RawNote(
                    pitch_deci_hz=RHYTHM_PITCH_DECI_HZ,
                    duration_ms=int(length * subdivision_ms),
                ),
                start_offset_ms=int(start * subdivision_ms),
            )
            for start, length in spans
        ]
        return RawPassage(notes=notes)

    def evaluate(
        self,
        expected: DiscretePassage,
        actual: RawPassage,
        time_signature: TimeSignature,
    ) -> EvaluationResult:
        expected_raw = self.discrete_to_raw_passage(expected, time_signature)
        rhythm = self.start_time_evaluator.evaluate(expected_raw, actual, self.context)
        return EvaluationResult(rhythm_evaluation=rhythm)
