"""Tests for the command-line interface."""

import json

import numpy as np
import pretty_midi
import pytest
from scipy.io import wavfile
from typer.testing import CliRunner

from cadenza.cli import app
from cadenza.core import RawNote, RawPassage, RawPassageNote
from cadenza.evaluation import EXTRA_NOTES
from cadenza.rhythm import DiscretePassage, TimeSignature

runner = CliRunner()


def write_raw(path, *notes):
    """Raw passage JSON from (start_ms, duration_ms) pairs."""
    passage = RawPassage(
        notes=[RawPassageNote(RawNote(4939, duration), start) for start, duration in notes]
    )
    path.write_text(json.dumps(passage.to_dict()))
    return path


@pytest.fixture
def performance_file(tmp_path):
    passage = RawPassage(
        notes=[
            RawPassageNote(RawNote(4939, 400), 0),
            RawPassageNote(RawNote(4939, 200), 520),
            RawPassageNote(RawNote(4939, 900), 1000),
        ]
    )
    path = tmp_path / "take.json"
    path.write_text(json.dumps(passage.to_dict()))
    return path


@pytest.fixture
def passage_file(tmp_path):
    path = tmp_path / "passage.json"
    result = runner.invoke(app, ["generate", "--seed", "3", "-o", str(path), "--json"])
    assert result.exit_code == 0
    return path


class TestGenerate:
    def test_json_output(self):
        result = runner.invoke(app, ["generate", "--seed", "11", "-m", "3", "-t", "3/4", "--json"])
        assert result.exit_code == 0
        passage = DiscretePassage.from_dict(json.loads(result.stdout))
        assert len(passage) == 3
        assert passage.resolution == 8

    def test_seed_is_repeatable(self):
        first = runner.invoke(app, ["generate", "--seed", "5", "--json"])
        second = runner.invoke(app, ["generate", "--seed", "5", "--json"])
        assert first.stdout == second.stdout

    def test_writes_file(self, tmp_path):
        path = tmp_path / "nested" / "passage.json"
        result = runner.invoke(app, ["generate", "--seed", "1", "-o", str(path)])
        assert result.exit_code == 0
        assert "Saved" in result.stdout
        assert len(DiscretePassage.from_dict(json.loads(path.read_text()))) == 2

    def test_default_time_signature(self):
        result = runner.invoke(app, ["generate", "--seed", "2", "--json"])
        passage = DiscretePassage.from_dict(json.loads(result.stdout))
        assert all(m.is_tiled(TimeSignature(4, 4)) for m in passage.measures)

    def test_invalid_time_signature(self):
        result = runner.invoke(app, ["generate", "-t", "4/5"])
        assert result.exit_code == 1
        assert "Error" in result.stdout

    def test_invalid_subdivision(self):
        result = runner.invoke(app, ["generate", "-s", "12"])
        assert result.exit_code == 1


class TestQuantize:
    def test_fits_performance(self, performance_file):
        result = runner.invoke(app, ["quantize", str(performance_file), "--json"])
        assert result.exit_code == 0
        passage = DiscretePassage.from_dict(json.loads(result.stdout))
        assert len(passage) == 1
        assert passage.note_count == 3

    def test_measure_count(self, performance_file, tmp_path):
        output = tmp_path / "quantized.json"
        result = runner.invoke(
            app, ["quantize", str(performance_file), "-m", "2", "-o", str(output)]
        )
        assert result.exit_code == 0
        assert "Quantized" in result.stdout
        assert len(DiscretePassage.from_dict(json.loads(output.read_text()))) == 2

    def test_midi_performance(self, tmp_path):
        midi = pretty_midi.PrettyMIDI(initial_tempo=120)
        instrument = pretty_midi.Instrument(program=0)
        instrument.notes.append(pretty_midi.Note(velocity=90, pitch=71, start=0.0, end=0.5))
        instrument.notes.append(pretty_midi.Note(velocity=90, pitch=71, start=1.0, end=1.5))
        midi.instruments.append(instrument)
        path = tmp_path / "take.mid"
        midi.write(str(path))

        result = runner.invoke(app, ["quantize", str(path), "--json"])
        assert result.exit_code == 0
        assert DiscretePassage.from_dict(json.loads(result.stdout)).note_count == 2

    def test_missing_file(self, tmp_path):
        result = runner.invoke(app, ["quantize", str(tmp_path / "missing.json")])
        assert result.exit_code == 1

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        result = runner.invoke(app, ["quantize", str(path)])
        assert result.exit_code == 1


class TestEvaluate:
    def test_quantized_performance_matches_itself(self, performance_file, tmp_path):
        expected = tmp_path / "expected.json"
        runner.invoke(app, ["quantize", str(performance_file), "-o", str(expected)])

        result = runner.invoke(
            app, ["evaluate", str(expected), str(performance_file), "--json"]
        )
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert set(data) == {"rhythmScore", "noteCritiques", "passageCritiques"}
        assert 0.0 <= data["rhythmScore"] <= 1.0

    def test_table_output(self, passage_file, performance_file):
        result = runner.invoke(app, ["evaluate", str(passage_file), str(performance_file)])
        assert result.exit_code == 0
        assert "Rhythm score" in result.stdout

    def test_default_chord_tolerance(self, tmp_path):
        expected = tmp_path / "expected.json"
        single = write_raw(tmp_path / "single.json", (0, 400))
        runner.invoke(app, ["quantize", str(single), "-o", str(expected)])
        chord = write_raw(tmp_path / "chord.json", (0, 400), (40, 400))

        result = runner.invoke(app, ["evaluate", str(expected), str(chord), "--json"])
        assert result.exit_code == 0
        assert EXTRA_NOTES not in json.loads(result.stdout)["passageCritiques"]

        result = runner.invoke(
            app, ["evaluate", str(expected), str(chord), "--chord-tolerance", "10", "--json"]
        )
        assert EXTRA_NOTES in json.loads(result.stdout)["passageCritiques"]

    def test_invalid_passage(self, tmp_path, performance_file):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"measures": [{"elements": []}]}))
        result = runner.invoke(app, ["evaluate", str(path), str(performance_file)])
        assert result.exit_code == 1


class TestExport:
    def test_export(self, passage_file, tmp_path):
        output = tmp_path / "passage.mid"
        result = runner.invoke(app, ["export", str(passage_file), "-o", str(output), "--tempo", "90"])
        assert result.exit_code == 0
        assert "Exported" in result.stdout
        midi = pretty_midi.PrettyMIDI(str(output))
        assert midi.instruments[0].notes

    def test_default_output_path(self, passage_file):
        result = runner.invoke(app, ["export", str(passage_file)])
        assert result.exit_code == 0
        assert passage_file.with_suffix(".mid").exists()


class TestDetect:
    @pytest.fixture
    def tone_file(self, tmp_path):
        sr = 44100
        t = np.arange(sr) / sr
        audio = (0.5 * np.sin(2 * np.pi * 440.0 * t) * 32767).astype(np.int16)
        path = tmp_path / "a4.wav"
        wavfile.write(str(path), sr, audio)
        return path

    def test_detect(self, tone_file):
        result = runner.invoke(app, ["detect", str(tone_file), "-a", "yin"])
        assert result.exit_code == 0
        assert "Median pitch" in result.stdout
        assert "A4" in result.stdout

    def test_detect_json(self, tone_file):
        result = runner.invoke(app, ["detect", str(tone_file), "-a", "mcleod", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["algorithm"] == "McLeod"
        assert data["frames"]
        assert all(frame["note"] == "A4" for frame in data["frames"])

    def test_silence(self, tmp_path):
        path = tmp_path / "silence.wav"
        wavfile.write(str(path), 44100, np.zeros(44100, dtype=np.int16))
        result = runner.invoke(app, ["detect", str(path), "-a", "yin"])
        assert result.exit_code == 0
        assert "No pitch detected" in result.stdout

    def test_trim(self, tmp_path):
        sr = 44100
        tone = 0.5 * np.sin(2 * np.pi * 220.0 * np.arange(sr) / sr)
        audio = np.concatenate([np.zeros(sr // 2), tone, np.zeros(sr // 2)])
        path = tmp_path / "padded.wav"
        wavfile.write(str(path), sr, (audio * 32767).astype(np.int16))

        plain = runner.invoke(app, ["detect", str(path), "-a", "yin", "--json"])
        trimmed = runner.invoke(app, ["detect", str(path), "-a", "yin", "--trim", "--json"])
        assert trimmed.exit_code == 0
        assert json.loads(plain.stdout)["duration"] == pytest.approx(2.0)
        data = json.loads(trimmed.stdout)
        assert data["duration"] < 1.2
        # Edge frames may straddle the trimmed boundary
        notes = [frame["note"] for frame in data["frames"]]
        assert notes.count("A3") >= len(notes) - 2 > 0

    def test_unknown_algorithm(self, tone_file):
        result = runner.invoke(app, ["detect", str(tone_file), "-a", "crepe"])
        assert result.exit_code == 1


def test_algorithms():
    result = runner.invoke(app, ["algorithms"])
    assert result.exit_code == 0
    for name in ["aggregate", "autocorrelation", "hps", "mcleod", "yaapt", "yin"]:
        assert name in result.stdout
