"""Discrete rhythm notation - passages on an integer subdivision grid."""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

from ..core.constants import DENOMINATORS, RHYTHM_NOTE_NAME

# Pitch used to place rests on the staff
REST_POSITION = "B4"


@dataclass(frozen=True)
class TimeSignature:
    """Meter of a passage, e.g. 4/4 or 6/8."""

    numerator: int = 4
    denominator: int = 4

    def __post_init__(self):
        if self.numerator <= 0:
            raise ValueError(f"Invalid time signature numerator: {self.numerator}")
        if self.denominator not in DENOMINATORS:
            raise ValueError(f"Invalid time signature denominator: {self.denominator}")

    @classmethod
    def parse(cls, text: str) -> "TimeSignature":
        """
        Parse a time signature string.

        Args:
            text: String of the form "n/d", e.g. "3/4"

        Raises:
            ValueError: If the string is not a valid time signature
        """
        parts = text.strip().split("/")
        if len(parts) != 2:
            raise ValueError(f"Invalid time signature: {text!r}")
        try:
            numerator, denominator = int(parts[0]), int(parts[1])
        except ValueError:
            raise ValueError(f"Invalid time signature: {text!r}") from None
        return cls(numerator, denominator)

    @property
    def display_string(self) -> str:
        return f"{self.numerator}/{self.denominator}"

    def __str__(self) -> str:
        return self.display_string

    def subdivisions_per_measure(self, resolution: int) -> int:
        """
        Number of grid units in one measure.

        Args:
            resolution: Smallest note value (8 = eighths, 16 = sixteenths)

        Raises:
            ValueError: If a measure is not a whole number of units
        """
        total = self.numerator * resolution
        if resolution <= 0 or total % self.denominator != 0:
            raise ValueError(
                f"Resolution {resolution} cannot express a {self.display_string} measure"
            )
        return total // self.denominator

    def strong_beat_positions(self, resolution: int) -> List[int]:
        """Grid positions of the strong beats in one measure."""
        per_beat = resolution // self.denominator
        signature = (self.numerator, self.denominator)

        if signature == (4, 4):
            beats = [0, 2]
        elif signature in ((3, 4), (2, 4), (2, 2)):
            beats = [0]
        elif signature in ((6, 8), (9, 8), (12, 8)):
            # Compound meter: groups of three
            beats = list(range(0, self.numerator, 3))
        else:
            beats = list(range(self.numerator))

        return [beat * per_beat for beat in beats]


@dataclass(frozen=True)
class DurationValue:
    """A written note value: 1 = whole, 2 = half, 4 = quarter ... plus dots."""

    denominator: int
    dots: int = 0

    def __post_init__(self):
        if self.denominator not in DENOMINATORS:
            raise ValueError(f"Invalid duration denominator: {self.denominator}")
        if self.dots not in (0, 1, 2):
            raise ValueError(f"Invalid number of dots: {self.dots}")

    def base_duration(self, resolution: int) -> int:
        return resolution // self.denominator

    def subdivision_duration(self, resolution: int) -> int:
        """Length in grid units at the given resolution."""
        base = self.base_duration(resolution)
        if self.dots == 1:
            return base * 3 // 2
        if self.dots == 2:
            return base * 7 // 4
        return base

    def is_valid(self, resolution: int) -> bool:
        """Whether the value is expressible at this resolution."""
        if resolution % self.denominator != 0:
            return False
        base = self.base_duration(resolution)
        if self.dots == 2:
            return base >= 4
        if self.dots == 1:
            return base >= 2
        return base >= 1

    @property
    def vexflow_duration(self) -> str:
        """VexFlow duration string, e.g. "4", "4." or "2.."."""
        return str(self.denominator) + "." * self.dots

    def to_dict(self) -> dict:
        return {"denominator": self.denominator, "dots": self.dots}

    @classmethod
    def from_dict(cls, data: dict) -> "DurationValue":
        return cls(denominator=int(data["denominator"]), dots=int(data.get("dots", 0)))


def _total(durations: Tuple[DurationValue, ...], resolution: int) -> int:
    return sum(d.subdivision_duration(resolution) for d in durations)


@dataclass(frozen=True)
class DiscreteNote:
    """A pitched note made of one or more tied duration values."""

    pitch_name: str = RHYTHM_NOTE_NAME
    durations: Tuple[DurationValue, ...] = field(default_factory=tuple)

    def total_subdivision_duration(self, resolution: int) -> int:
        return _total(self.durations, resolution)


@dataclass(frozen=True)
class DiscreteRest:
    durations: Tuple[DurationValue, ...] = field(default_factory=tuple)

    def total_subdivision_duration(self, resolution: int) -> int:
        return _total(self.durations, resolution)


DiscreteElement = Union[DiscreteNote, DiscreteRest]


@dataclass(frozen=True)
class MeasureElement:
    """A note or rest placed at a grid position inside a measure."""

    element: DiscreteElement
    start_subdivision: int
    tied_from_previous: bool = False  # tail of a note begun in an earlier measure

    @property
    def is_note(self) -> bool:
        return isinstance(self.element, DiscreteNote)

    @property
    def is_rest(self) -> bool:
        return isinstance(self.element, DiscreteRest)

    def length(self, resolution: int) -> int:
        return self.element.total_subdivision_duration(resolution)

    def to_vexflow(self) -> List[str]:
        if self.is_note:
            return [
                f"{self.element.pitch_name}/{d.vexflow_duration}"
                for d in self.element.durations
            ]
        return [f"{REST_POSITION}/{d.vexflow_duration}/r" for d in self.element.durations]

    def to_dict(self) -> dict:
        if self.is_note:
            element = {
                "Note": {
                    "noteName": self.element.pitch_name,
                    "noteDurations": [d.to_dict() for d in self.element.durations],
                }
            }
        else:
            element = {
                "Rest": {"restDurations": [d.to_dict() for d in self.element.durations]}
            }
        return {
            "element": element,
            "startSubdivision": self.start_subdivision,
            "tiedFromPrevious": self.tied_from_previous,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MeasureElement":
        raw = data["element"]
        element: DiscreteElement
        if "Note" in raw:
            note = raw["Note"]
            element = DiscreteNote(
                pitch_name=note["noteName"],
                durations=tuple(DurationValue.from_dict(d) for d in note["noteDurations"]),
            )
        elif "Rest" in raw:
            element = DiscreteRest(
                durations=tuple(
                    DurationValue.from_dict(d) for d in raw["Rest"]["restDurations"]
                )
            )
        else:
            raise ValueError(f"Element is neither a Note nor a Rest: {raw}")
        return cls(
            element=element,
            start_subdivision=int(data["startSubdivision"]),
            tied_from_previous=bool(data.get("tiedFromPrevious", False)),
        )


@dataclass(frozen=True)
class DiscreteMeasure:
    """One measure; its elements tile [0, subdivisions_per_measure)."""

    subdivision_denominator: int
    elements: Tuple[MeasureElement, ...] = field(default_factory=tuple)

    @property
    def total_subdivisions(self) -> int:
        return sum(e.length(self.subdivision_denominator) for e in self.elements)

    def is_tiled(self, time_signature: TimeSignature) -> bool:
        """Whether elements exactly cover the measure without gaps or overlaps."""
        position = 0
        for element in sorted(self.elements, key=lambda e: e.start_subdivision):
            if element.start_subdivision != position:
                return False
            position += element.length(self.subdivision_denominator)
        return position == time_signature.subdivisions_per_measure(
            self.subdivision_denominator
        )

    def to_dict(self) -> dict:
        return {
            "subdivisionDenominator": self.subdivision_denominator,
            "elements": [e.to_dict() for e in self.elements],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DiscreteMeasure":
        return cls(
            subdivision_denominator=int(data["subdivisionDenominator"]),
            elements=tuple(MeasureElement.from_dict(e) for e in data["elements"]),
        )


@dataclass(frozen=True)
class DiscretePassage:
    """An ordered sequence of measures."""

    measures: Tuple[DiscreteMeasure, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.measures)

    @property
    def resolution(self) -> Optional[int]:
        if not self.measures:
            return None
        return self.measures[0].subdivision_denominator

    @property
    def note_count(self) -> int:
        """Number of note onsets (tied tails excluded)."""
        return sum(
            1
            for measure in self.measures
            for e in measure.elements
            if e.is_note and not e.tied_from_previous
        )

    def to_vexflow_notation(self) -> List[List[str]]:
        """EasyScore tokens per measure, e.g. [["B4/4", "B4/8/r"], ...]."""
        return [
            [token for element in measure.elements for token in element.to_vexflow()]
            for measure in self.measures
        ]

    def to_simple_notation(self) -> str:
        """All measures as one comma-separated EasyScore voice."""
        return ", ".join(
            token for measure in self.to_vexflow_notation() for token in measure
        )

    def to_dict(self) -> dict:
        return {"measures": [m.to_dict() for m in self.measures]}

    @classmethod
    def from_dict(cls, data: dict) -> "DiscretePassage":
        """
        Build a passage from its JSON exchange shape.

        Raises:
            ValueError: If the data is malformed
        """
        try:
            measures = tuple(DiscreteMeasure.from_dict(m) for m in data["measures"])
        except (KeyError, TypeError) as e:
            raise ValueError(f"Invalid passage data: {e}") from e
        return cls(measures=measures)
