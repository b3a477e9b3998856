"""Evaluation layer - Scoring a performance.

This layer compares what was played with what was written:
- Rhythm entities (single onsets and chords)
- Onset timing bands, penalties and per-note critiques
- Passage-level scores
"""

from .evaluators import (
    EvaluationContext,
    Thresholds,
    NoteCritique,
    VectorEvaluation,
    RhythmEntity,
    group_rhythm_entities,
    StartTimeEvaluator,
    EvaluationResult,
    PassageEvaluator,
    MISSED_NOTES,
    EXTRA_NOTES,
)

__all__ = [
    "EvaluationContext",
    "Thresholds",
    "NoteCritique",
    "VectorEvaluation",
    "RhythmEntity",
    "group_rhythm_entities",
    "StartTimeEvaluator",
    "EvaluationResult",
    "PassageEvaluator",
    "MISSED_NOTES",
    "EXTRA_NOTES",
]
