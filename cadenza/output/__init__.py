"""Output layer - Export to other formats.

This layer handles exporting passages to:
- MIDI files (playback in a DAW or notation software)
"""

from .midi import PassageMIDIExporter

__all__ = [
    "PassageMIDIExporter",
]
