"""Pitch layer - Fundamental frequency estimation.

This layer turns a mono buffer of samples into a pitch:
- Five single-buffer detectors (autocorrelation, YIN, McLeod, HPS, YAAPT)
- Concurrent consensus voting across detectors
- Level-gated tracking of live buffers and whole signals
"""

from .base import (
    PitchDetectionAlgorithm,
    PitchDetectorConfig,
    PitchEstimate,
    AggregatePitchEstimate,
    cents_between,
)
from .autocorrelation import AutocorrelationPitchDetector
from .yin import YINPitchDetector
from .mcleod import McLeodPitchDetector
from .hps import HarmonicProductSpectrumDetector
from .yaapt import YAAPTPitchDetector
from .aggregate import (
    AggregateDetectorConfig,
    AggregatePitchDetector,
    available_algorithms,
    create_algorithm,
    create_aggregate_detector,
    create_all_algorithms,
)
from .tracker import PitchReading, PitchTracker

__all__ = [
    "PitchDetectionAlgorithm",
    "PitchDetectorConfig",
    "PitchEstimate",
    "AggregatePitchEstimate",
    "cents_between",
    "AutocorrelationPitchDetector",
    "YINPitchDetector",
    "McLeodPitchDetector",
    "HarmonicProductSpectrumDetector",
    "YAAPTPitchDetector",
    "AggregateDetectorConfig",
    "AggregatePitchDetector",
    "available_algorithms",
    "create_algorithm",
    "create_aggregate_detector",
    "create_all_algorithms",
    "PitchReading",
    "PitchTracker",
]
