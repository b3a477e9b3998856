"""Greedy decomposition of grid spans into written note values."""

from typing import List, Tuple

from ..core.constants import DENOMINATORS
from .notation import DurationValue


def check_resolution(resolution: int) -> None:
    """Raise ValueError unless resolution is one of 1, 2, 4, 8, 16, 32."""
    if resolution not in DENOMINATORS:
        raise ValueError(
            f"Unsupported subdivision resolution: {resolution}. "
            f"Supported: {DENOMINATORS}"
        )


def find_largest_fitting_duration(
    remaining: int, position: int, resolution: int
) -> Tuple[DurationValue, int]:
    """
    Largest note value that may start at `position`.

    A value fits when it starts on its own grid (position % base == 0),
    is no longer than `remaining` and stays inside its cell: `base` for
    plain values, `2 * base` for dotted ones.

    Args:
        remaining: Grid units still to cover
        position: Grid position within the measure
        resolution: Smallest subdivision (units per whole note)

    Returns:
        Tuple of (duration value, grid units it covers)
    """
    for denominator in DENOMINATORS:
        base = resolution // denominator
        if base < 1 or position % base != 0:
            continue

        for dots in (2, 1, 0):
            value = DurationValue(denominator, dots)
            if not value.is_valid(resolution):
                continue
            count = value.subdivision_duration(resolution)
            cell = base if dots == 0 else 2 * base
            if count <= remaining and position % cell + count <= cell:
                return value, count

    return DurationValue(resolution, 0), 1


def decompose_span(span: int, position: int, resolution: int) -> List[DurationValue]:
    """Cover `span` grid units starting at `position` with note values."""
    durations = []
    while span > 0:
        value, count = find_largest_fitting_duration(span, position, resolution)
        durations.append(value)
        span -= count
        position += count
    return durations
