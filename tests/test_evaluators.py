"""Tests for start time evaluation."""

import pytest

from cadenza.core import RawNote, RawPassage, RawPassageNote
from cadenza.evaluation import (
    EXTRA_NOTES,
    MISSED_NOTES,
    EvaluationContext,
    NoteCritique,
    PassageEvaluator,
    StartTimeEvaluator,
    group_rhythm_entities,
)
from cadenza.rhythm import (
    DiscreteMeasure,
    DiscreteNote,
    DiscretePassage,
    DiscreteRest,
    DurationValue,
    MeasureElement,
    TimeSignature,
)


def _raw(*starts, duration=100):
    return RawPassage(
        notes=[RawPassageNote(note=RawNote(4939, duration), start_offset_ms=s) for s in starts]
    )


class TestEvaluationContext:
    """Tests for EvaluationContext."""

    def test_subdivision_duration(self):
        assert EvaluationContext(120.0, 4, 8).subdivision_duration_ms == 250.0
        assert EvaluationContext(120.0, 1, 4).subdivision_duration_ms == 125.0
        assert EvaluationContext(60.0, 8, 16).subdivision_duration_ms == 500.0

    def test_rejects_non_positive_tempo(self):
        with pytest.raises(ValueError):
            EvaluationContext(tempo=0)


class TestRhythmEntities:
    """Tests for chord grouping."""

    def test_groups_by_first_note_of_entity(self):
        entities = group_rhythm_entities(_raw(0, 30, 60, 200).notes, 50)
        assert [e.start_time for e in entities] == [0, 60, 200]
        assert [e.note_indices for e in entities] == [[0, 1], [2], [3]]

    def test_zero_tolerance_only_merges_identical_starts(self):
        entities = group_rhythm_entities(_raw(0, 0, 1).notes, 0)
        assert [e.note_count for e in entities] == [2, 1]

    def test_empty(self):
        assert group_rhythm_entities([], 50) == []


class TestStartTimeEvaluator:
    """Tests for StartTimeEvaluator."""

    @pytest.fixture
    def context(self):
        # 125 ms per subdivision
        return EvaluationContext(tempo=120.0, tempo_subdivision=1, subdivision_resolution=4)

    @pytest.fixture
    def evaluator(self):
        return StartTimeEvaluator(chord_tolerance_ms=50)

    def test_both_empty_scores_one(self, evaluator, context):
        result = evaluator.evaluate(RawPassage(), RawPassage(), context)
        assert result.score == 1.0
        assert not result.note_critiques

    def test_expected_empty_actual_not(self, evaluator, context):
        result = evaluator.evaluate(RawPassage(), _raw(0), context)
        assert result.score == 0.0
        assert EXTRA_NOTES in result.passage_critiques

    def test_perfect_timing(self, evaluator, context):
        result = evaluator.evaluate(_raw(0, 250, 500), _raw(0, 250, 500), context)
        assert result.score == pytest.approx(1.0)
        assert not result.passage_critiques

    def test_close_notes_are_one_chord(self, evaluator, context):
        expected = _raw(0, 0)
        result = evaluator.evaluate(expected, _raw(0, 10), context)
        assert result.score == pytest.approx(1.0)
        assert not result.passage_critiques

    def test_notes_beyond_tolerance_are_extra(self, evaluator, context):
        expected = _raw(0, 0)
        result = evaluator.evaluate(expected, _raw(0, 51), context)
        assert EXTRA_NOTES in result.passage_critiques
        assert result.score < 1.0

    def test_late_chord_is_slightly_late(self, evaluator, context):
        expected = _raw(0, 0, 0)
        result = evaluator.evaluate(expected, _raw(85, 88, 90), context)
        assert result.note_critiques == {
            0: NoteCritique.SLIGHTLY_LATE,
            1: NoteCritique.SLIGHTLY_LATE,
            2: NoteCritique.SLIGHTLY_LATE,
        }
        assert 0.6 < result.score < 1.0

    @pytest.mark.parametrize(
        "actual_start,critique,score",
        [
            (1040, None, 1.0),
            (1100, NoteCritique.SLIGHTLY_LATE, 0.8),
            (900, NoteCritique.SLIGHTLY_EARLY, 0.8),
            (1200, NoteCritique.MODERATELY_LATE, 0.5),
            (800, NoteCritique.MODERATELY_EARLY, 0.5),
            (1300, NoteCritique.SEVERELY_LATE, 0.0),
            (600, NoteCritique.SEVERELY_EARLY, 0.0),
        ],
    )
    def test_timing_bands(self, evaluator, context, actual_start, critique, score):
        result = evaluator.evaluate(_raw(1000), _raw(actual_start), context)
        assert result.score == pytest.approx(score)
        assert result.note_critiques.get(0) == critique

    def test_missed_notes(self, evaluator, context):
        result = evaluator.evaluate(_raw(0, 500, 1000, 1500), _raw(0, 500), context)
        assert MISSED_NOTES in result.passage_critiques
        # Two of four entities played on time, scaled by 2/4
        assert result.score == pytest.approx(0.5 * 0.5)

    def test_critiques_index_actual_notes(self, evaluator, context):
        # Listed out of order: index 1 is the early first onset
        actual = RawPassage()
        actual.notes = [
            RawPassageNote(RawNote(4939, 100), 1000),
            RawPassageNote(RawNote(4939, 100), 0),
        ]
        result = evaluator.evaluate(_raw(100, 1000), actual, context)
        assert result.note_critiques == {1: NoteCritique.SLIGHTLY_EARLY}

    def test_critique_descriptions(self):
        assert NoteCritique.SLIGHTLY_EARLY.description == "Slightly early"
        assert NoteCritique.SEVERELY_LATE.description == "Severely late"


class TestPassageEvaluator:
    """Tests for PassageEvaluator."""

    @pytest.fixture
    def passage(self):
        def note(start, denominator, tied=False):
            return MeasureElement(
                DiscreteNote("B4", (DurationValue(denominator),)), start, tied
            )

        def rest(start, denominator):
            return MeasureElement(DiscreteRest((DurationValue(denominator),)), start)

        return DiscretePassage(
            measures=(
                DiscreteMeasure(8, (note(0, 4), rest(2, 4), note(4, 2))),
                DiscreteMeasure(8, (note(0, 4, tied=True), rest(2, 4), note(4, 2))),
            )
        )

    @pytest.fixture
    def evaluator(self):
        return PassageEvaluator(EvaluationContext(tempo=120.0, tempo_subdivision=4, subdivision_resolution=8))

    def test_discrete_to_raw(self, evaluator, passage):
        raw = evaluator.discrete_to_raw_passage(passage, TimeSignature(4, 4))
        assert [n.start_offset_ms for n in raw.notes] == [0, 1000, 3000]
        # The tied tail extends the second note
        assert [n.note.duration_ms for n in raw.notes] == [500, 1500, 1000]
        assert all(n.note.pitch_deci_hz == 4939 for n in raw.notes)

    def test_evaluate_exact_performance(self, evaluator, passage):
        result = evaluator.evaluate(passage, _raw(0, 1000, 3000), TimeSignature(4, 4))
        assert result.rhythm_score == pytest.approx(1.0)

    def test_evaluate_sloppy_performance(self, evaluator, passage):
        result = evaluator.evaluate(passage, _raw(30, 1180, 3000), TimeSignature(4, 4))
        assert result.rhythm_score == pytest.approx((1.0 + 0.8 + 1.0) / 3)
        assert result.rhythm_evaluation.note_critiques == {1: NoteCritique.SLIGHTLY_LATE}

    def test_to_dict(self, evaluator, passage):
        result = evaluator.evaluate(passage, _raw(0, 1000), TimeSignature(4, 4))
        data = result.to_dict()
        assert data["passageCritiques"] == [MISSED_NOTES]
        assert data["rhythmScore"] == pytest.approx(result.rhythm_score)
