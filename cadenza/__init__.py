"""Cadenza - Pitch detection and rhythm practice toolkit.

Architecture Layers:
    1. core/        - Raw note types, pitch units and defaults
    2. pitch/       - Pitch detectors, consensus voting, tracking
    3. rhythm/      - Time signatures, discrete notation, passage generation
    4. processing/  - Quantization of raw notes onto the subdivision grid
    5. evaluation/  - Timing evaluation of a performance
    6. input/       - Audio files, live note events, MIDI performances
    7. output/      - Export (MIDI)
"""

__version__ = "0.1.0"

# Core types
from .core import RawNote, RawPassage, RawPassageNote

# Pitch layer
from .pitch import (
    PitchEstimate,
    AggregatePitchEstimate,
    PitchDetectorConfig,
    AutocorrelationPitchDetector,
    YINPitchDetector,
    McLeodPitchDetector,
    HarmonicProductSpectrumDetector,
    YAAPTPitchDetector,
    AggregatePitchDetector,
    PitchTracker,
    create_algorithm,
    create_aggregate_detector,
)

# Rhythm layer
from .rhythm import (
    TimeSignature,
    DurationValue,
    DiscreteNote,
    DiscreteRest,
    MeasureElement,
    DiscreteMeasure,
    DiscretePassage,
    PassageGenerator,
)

# Processing layer
from .processing import SnapperConfig, SubdivisionSnapper, RawToDiscreteConverter

# Evaluation layer
from .evaluation import (
    EvaluationContext,
    NoteCritique,
    StartTimeEvaluator,
    PassageEvaluator,
)

# Input layer
from .input import AudioLoader, NoteInputListener, MidiPerformanceReader

# Output layer
from .output import PassageMIDIExporter

__all__ = [
    # Core
    "RawNote",
    "RawPassage",
    "RawPassageNote",
    # Pitch
    "PitchEstimate",
    "AggregatePitchEstimate",
    "PitchDetectorConfig",
    "AutocorrelationPitchDetector",
    "YINPitchDetector",
    "McLeodPitchDetector",
    "HarmonicProductSpectrumDetector",
    "YAAPTPitchDetector",
    "AggregatePitchDetector",
    "PitchTracker",
    "create_algorithm",
    "create_aggregate_detector",
    # Rhythm
    "TimeSignature",
    "DurationValue",
    "DiscreteNote",
    "DiscreteRest",
    "MeasureElement",
    "DiscreteMeasure",
    "DiscretePassage",
    "PassageGenerator",
    # Processing
    "SnapperConfig",
    "SubdivisionSnapper",
    "RawToDiscreteConverter",
    # Evaluation
    "EvaluationContext",
    "NoteCritique",
    "StartTimeEvaluator",
    "PassageEvaluator",
    # Input
    "AudioLoader",
    "NoteInputListener",
    "MidiPerformanceReader",
    # Output
    "PassageMIDIExporter",
]
