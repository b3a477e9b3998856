"""Processing layer - From captured notes to notation.

This layer quantizes a performance:
- Millisecond to subdivision snapping (half-up rounding)
- Monophonic line cleanup (shared onsets, overlaps)
- Bar line splitting with ties
- Rest filling
"""

from .quantize import (
    SnapperConfig,
    SubdivisionSnapper,
    RawToDiscreteConverter,
    round_half_up,
)

__all__ = [
    "SnapperConfig",
    "SubdivisionSnapper",
    "RawToDiscreteConverter",
    "round_half_up",
]
