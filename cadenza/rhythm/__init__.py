"""Rhythm layer - Musical time on an integer grid.

This layer models written rhythm:
- Time signatures and strong beats
- Note values, discrete notes, rests, measures and passages
- Greedy decomposition of spans into note values
- Random passage generation
"""

from .notation import (
    TimeSignature,
    DurationValue,
    DiscreteNote,
    DiscreteRest,
    MeasureElement,
    DiscreteMeasure,
    DiscretePassage,
)
from .durations import check_resolution, decompose_span, find_largest_fitting_duration
from .generator import PassageGenerator

__all__ = [
    "TimeSignature",
    "DurationValue",
    "DiscreteNote",
    "DiscreteRest",
    "MeasureElement",
    "DiscreteMeasure",
    "DiscretePassage",
    "check_resolution",
    "decompose_span",
    "find_largest_fitting_duration",
    "PassageGenerator",
]
