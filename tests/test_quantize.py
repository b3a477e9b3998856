"""Tests for subdivision snapping and raw-to-discrete conversion."""

import random

import pytest

from cadenza.core import RawNote, RawPassage, RawPassageNote
from cadenza.processing import (
    RawToDiscreteConverter,
    SnapperConfig,
    SubdivisionSnapper,
    round_half_up,
)
from cadenza.rhythm import DurationValue, TimeSignature


def _raw(*notes):
    """RawPassage from (start_ms, duration_ms) pairs."""
    return RawPassage(
        notes=[
            RawPassageNote(note=RawNote(4939, duration), start_offset_ms=start)
            for start, duration in notes
        ]
    )


def _summary(measure):
    """(kind, start, durations, tied) per element."""
    return [
        (
            "note" if e.is_note else "rest",
            e.start_subdivision,
            [(d.denominator, d.dots) for d in e.element.durations],
            e.tied_from_previous,
        )
        for e in measure.elements
    ]


class TestSubdivisionSnapper:
    """Tests for SubdivisionSnapper."""

    @pytest.fixture
    def snapper(self):
        # 120 BPM, quarter beat, eighth grid: 250 ms per unit
        return SubdivisionSnapper(SnapperConfig(tempo=120.0, tempo_subdivision=4, subdivision_resolution=8))

    def test_derived_durations(self, snapper):
        assert snapper.beat_duration_ms == 500.0
        assert snapper.subdivision_duration_ms == 250.0
        assert snapper.subdivisions_per_measure == 8

    def test_snap_duration(self, snapper):
        assert snapper.snap_to_subdivisions(500) == 2
        assert snapper.snap_to_subdivisions(600) == 2
        assert snapper.snap_to_subdivisions(640) == 3

    def test_half_rounds_up(self, snapper):
        assert snapper.snap_to_subdivisions(125) == 1
        assert snapper.snap_start_offset(375) == 2
        assert round_half_up(2.5) == 3
        assert round_half_up(2.49) == 2

    def test_zero_length(self, snapper):
        assert snapper.snap_to_subdivisions(100) == 1
        assert snapper.snap_to_subdivisions(100, allow_zero=True) == 0

    def test_snap_start_offset(self, snapper):
        assert snapper.snap_start_offset(0) == 0
        assert snapper.snap_start_offset(1010) == 4

    def test_rejects_non_positive_tempo(self):
        with pytest.raises(ValueError):
            SnapperConfig(tempo=0)
        with pytest.raises(ValueError):
            SnapperConfig(tempo=-60)

    def test_rejects_unsupported_resolution(self):
        with pytest.raises(ValueError):
            SnapperConfig(subdivision_resolution=12)


class TestRawToDiscreteConverter:
    """Tests for RawToDiscreteConverter."""

    @pytest.fixture
    def converter(self):
        return RawToDiscreteConverter(SubdivisionSnapper(SnapperConfig()))

    def test_single_note_with_rests(self, converter):
        passage = converter.convert(_raw((0, 500)), measure_count=1)
        assert _summary(passage.measures[0]) == [
            ("note", 0, [(4, 0)], False),
            ("rest", 2, [(4, 0)], False),
            ("rest", 4, [(2, 0)], False),
        ]

    def test_note_across_bar_line_is_tied(self, converter):
        passage = converter.convert(_raw((1500, 1000)), measure_count=2)
        assert _summary(passage.measures[0]) == [
            ("rest", 0, [(2, 1)], False),
            ("note", 6, [(4, 0)], False),
        ]
        assert _summary(passage.measures[1]) == [
            ("note", 0, [(4, 0)], True),
            ("rest", 2, [(4, 0)], False),
            ("rest", 4, [(2, 0)], False),
        ]

    def test_empty_passage_is_all_rests(self, converter):
        passage = converter.convert(RawPassage(), measure_count=2)
        for measure in passage.measures:
            assert _summary(measure) == [("rest", 0, [(1, 0)], False)]

    def test_note_past_last_measure_is_dropped(self, converter):
        passage = converter.convert(_raw((0, 250), (4000, 250)), measure_count=1)
        notes = [e for e in passage.measures[0].elements if e.is_note]
        assert len(notes) == 1

    def test_shared_onset_keeps_first_note(self, converter):
        passage = converter.convert(_raw((0, 500), (20, 1000)), measure_count=1)
        notes = [e for e in passage.measures[0].elements if e.is_note]
        assert len(notes) == 1
        assert notes[0].element.durations == (DurationValue(4),)

    def test_overlapping_note_is_cut_at_next_onset(self, converter):
        passage = converter.convert(_raw((0, 1000), (500, 250)), measure_count=1)
        assert _summary(passage.measures[0])[:2] == [
            ("note", 0, [(4, 0)], False),
            ("note", 2, [(8, 0)], False),
        ]

    def test_note_is_cut_at_passage_end(self, converter):
        passage = converter.convert(_raw((1500, 5000)), measure_count=2)
        assert len(passage) == 2
        assert passage.measures[1].elements[0].tied_from_previous
        assert all(m.is_tiled(TimeSignature(4, 4)) for m in passage.measures)

    def test_uses_given_note_name(self, converter):
        passage = converter.convert(_raw((0, 500)), measure_count=1, note_name="C5")
        assert passage.measures[0].elements[0].element.pitch_name == "C5"

    def test_rejects_non_positive_measure_count(self, converter):
        with pytest.raises(ValueError):
            converter.convert(_raw((0, 500)), measure_count=0)

    @pytest.mark.parametrize("signature", ["3/4", "4/4", "6/8", "7/8"])
    @pytest.mark.parametrize("resolution", [8, 16])
    def test_random_performances_are_tiled(self, signature, resolution):
        ts = TimeSignature.parse(signature)
        converter = RawToDiscreteConverter(
            SubdivisionSnapper(
                SnapperConfig(tempo=90.0, subdivision_resolution=resolution, time_signature=ts)
            )
        )
        rng = random.Random(7)
        for _ in range(20):
            notes = [(rng.randint(0, 6000), rng.randint(30, 1500)) for _ in range(rng.randint(0, 12))]
            passage = converter.convert(_raw(*notes), measure_count=3)
            assert len(passage) == 3
            for measure in passage.measures:
                assert measure.is_tiled(ts)
                for element in measure.elements:
                    assert all(d.is_valid(resolution) for d in element.element.durations)
