"""Tests for consensus pitch detection."""

import numpy as np
import pytest

from cadenza.pitch import (
    AggregateDetectorConfig,
    AggregatePitchDetector,
    AggregatePitchEstimate,
    PitchDetectionAlgorithm,
    PitchEstimate,
    YINPitchDetector,
    available_algorithms,
    cents_between,
    create_aggregate_detector,
    create_algorithm,
    create_all_algorithms,
)

SR = 44100


class FixedDetector(PitchDetectionAlgorithm):
    """Returns a preset estimate, or None."""

    def __init__(self, frequency=None, confidence=1.0, name="Fixed"):
        self.frequency = frequency
        self.confidence = confidence
        self.name = name
        self.calls = 0

    def detect(self, samples, sample_rate, min_frequency, max_frequency):
        self.calls += 1
        if self.frequency is None:
            return None
        return PitchEstimate(self.frequency, self.confidence, self.name)


def harmonic_tone(freq, length=4096):
    t = np.arange(length) / SR
    return 0.3 * sum(np.sin(2 * np.pi * freq * k * t) / k for k in range(1, 5))


class TestCents:
    """Tests for cents_between."""

    def test_identity(self):
        for f in [55.0, 261.63, 440.0, 1760.0]:
            assert cents_between(f, f) == 0.0

    def test_antisymmetric(self):
        for f1, f2 in [(440.0, 466.16), (100.0, 150.0), (880.0, 440.0)]:
            assert cents_between(f1, f2) == pytest.approx(-cents_between(f2, f1))

    def test_octave(self):
        assert cents_between(880.0, 440.0) == pytest.approx(1200.0)
        assert cents_between(440.0 * 2 ** (1 / 12), 440.0) == pytest.approx(100.0)


class TestConsensus:
    """Voting rules with deterministic detectors."""

    def _detect(self, detectors, **config):
        aggregate = AggregatePitchDetector(detectors, AggregateDetectorConfig(**config))
        return aggregate.detect_with_details(np.zeros(1024), SR, 60.0, 2000.0)

    def test_majority_group_wins(self):
        result = self._detect(
            [
                FixedDetector(440.0, 0.9, "a"),
                FixedDetector(442.0, 0.6, "b"),
                FixedDetector(880.0, 0.8, "c"),
            ]
        )
        assert isinstance(result, AggregatePitchEstimate)
        assert result.consensus_count == 2
        assert result.total_algorithms == 3
        assert result.has_majority_consensus
        assert result.frequency == 440.0
        assert result.confidence == pytest.approx(0.75 * (0.5 + 0.5 * 2 / 3))
        assert {e.algorithm for e in result.estimates} == {"a", "b"}

    def test_weighted_median(self):
        estimates = [
            PitchEstimate(438.0, 0.1, "a"),
            PitchEstimate(440.0, 0.2, "b"),
            PitchEstimate(445.0, 0.9, "c"),
        ]
        assert AggregatePitchDetector.weighted_median(estimates) == 445.0

    def test_too_few_estimates(self):
        result = self._detect([FixedDetector(440.0), FixedDetector(None), FixedDetector(None)])
        assert result is None

    def test_majority_required(self):
        detectors = [
            FixedDetector(440.0),
            FixedDetector(441.0),
            FixedDetector(None),
            FixedDetector(None),
            FixedDetector(None),
        ]
        assert self._detect(detectors) is None
        result = self._detect(detectors, require_majority=False)
        assert result is not None
        assert result.consensus_count == 2
        assert not result.has_majority_consensus

    def test_minimum_consensus(self):
        detectors = [FixedDetector(220.0), FixedDetector(440.0), FixedDetector(880.0)]
        assert self._detect(detectors, require_majority=False) is None
        result = self._detect(detectors, require_majority=False, minimum_consensus=1)
        assert result.frequency == 220.0

    def test_estimate_joins_first_matching_group(self):
        aggregate = AggregatePitchDetector([])
        groups = aggregate.group_estimates(
            [
                PitchEstimate(440.0, 1.0, "a"),
                PitchEstimate(460.0, 1.0, "b"),  # 77 cents above a
                PitchEstimate(450.0, 1.0, "c"),  # within 50 cents of both
            ]
        )
        assert [[e.algorithm for e in g] for g in groups] == [["a", "c"], ["b"]]

    def test_single_linkage(self):
        aggregate = AggregatePitchDetector([])
        groups = aggregate.group_estimates(
            [
                PitchEstimate(440.0, 1.0, "a"),
                PitchEstimate(450.0, 1.0, "b"),
                PitchEstimate(460.0, 1.0, "c"),  # 38 cents from b, 77 from a
            ]
        )
        assert len(groups) == 1

    def test_every_detector_runs(self):
        detectors = [FixedDetector(440.0) for _ in range(5)]
        AggregatePitchDetector(detectors, max_workers=2).detect(np.zeros(16), SR, 60.0, 2000.0)
        assert all(d.calls == 1 for d in detectors)

    def test_detect_returns_plain_estimate(self):
        aggregate = AggregatePitchDetector([FixedDetector(440.0), FixedDetector(440.0)])
        estimate = aggregate.detect(np.zeros(16), SR, 60.0, 2000.0)
        assert isinstance(estimate, PitchEstimate)
        assert estimate.algorithm == "Aggregate"
        assert estimate.frequency == 440.0

    def test_no_algorithms(self):
        assert AggregatePitchDetector([]).detect(np.zeros(16), SR, 60.0, 2000.0) is None


class TestAggregateOnAudio:
    """The real detectors agree on a harmonic tone."""

    def test_harmonic_tone(self):
        result = create_aggregate_detector().detect_with_details(
            harmonic_tone(220.0), SR, 60.0, 2000.0
        )
        assert result is not None
        assert result.total_algorithms == 5
        assert result.consensus_count >= 3
        assert abs(cents_between(result.frequency, 220.0)) < 50
        assert 0.0 < result.confidence <= 1.0

    def test_silence(self):
        assert create_aggregate_detector().detect(np.zeros(4096), SR, 60.0, 2000.0) is None


class TestFactory:
    """Tests for the detector factory."""

    def test_all_algorithms(self):
        names = [a.name for a in create_all_algorithms()]
        assert names == ["Autocorrelation", "YIN", "McLeod", "HPS", "YAAPT"]

    def test_create_by_name(self):
        assert isinstance(create_algorithm("yin"), YINPitchDetector)
        assert isinstance(create_algorithm("YIN"), YINPitchDetector)
        assert create_algorithm("mpm").name == "McLeod"
        assert isinstance(create_algorithm("aggregate"), AggregatePitchDetector)

    def test_unknown_name(self):
        assert create_algorithm("crepe") is None

    def test_default_aggregate_config(self):
        detector = create_aggregate_detector()
        assert detector.config == AggregateDetectorConfig(50.0, 2, True)
        assert len(detector.algorithms) == 5

    def test_available_algorithms(self):
        assert "aggregate" in available_algorithms()
        assert "hps" in available_algorithms()
