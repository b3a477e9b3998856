"""Note input listener - collects note on/off events into a RawPassage.

Events from any number of producers (taps, MIDI) go through one ordered
queue. A single worker thread drains it and is the only writer of the
passage, so producers never block on each other.
"""

import logging
import queue
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from ..core import RawNote, RawPassage, RawPassageNote
from ..core.constants import RHYTHM_PITCH_DECI_HZ

logger = logging.getLogger(__name__)

NoteCallback = Callable[[RawPassageNote], None]
PassageCallback = Callable[[RawPassage], None]

NOTE_START = "start"
NOTE_END = "end"
CLEAR = "clear"


@dataclass(frozen=True)
class NoteInputEvent:
    """A note start/end (or clear) request with its timestamp in ms."""

    kind: str
    pitch_deci_hz: int = 0
    timestamp_ms: int = 0


@dataclass(frozen=True)
class NoteInputListenerConfig:
    default_pitch_deci_hz: int = RHYTHM_PITCH_DECI_HZ  # pitch used for taps

    @classmethod
    def rhythm_practice(cls) -> "NoteInputListenerConfig":
        return cls(default_pitch_deci_hz=RHYTHM_PITCH_DECI_HZ)


def current_timestamp_ms() -> int:
    """Wall-clock time in milliseconds."""
    return int(time.time() * 1000)


class NoteInputListener:
    """Single-consumer note event queue that builds a RawPassage."""

    def __init__(self, config: Optional[NoteInputListenerConfig] = None):
        self.config = config or NoteInputListenerConfig()

        self._queue: "queue.Queue[Optional[NoteInputEvent]]" = queue.Queue()
        self._passage = RawPassage()
        self._passage_start_ms: Optional[int] = None
        self._active_notes: Dict[int, int] = {}  # pitch -> start timestamp

        self._lock = threading.Lock()
        self._note_subscribers: List[NoteCallback] = []
        self._passage_subscribers: List[PassageCallback] = []

        self._closed = False
        self._worker = threading.Thread(
            target=self._run, name="note-input-listener", daemon=True
        )
        self._worker.start()

    # Producers

    def note_started(self, pitch_deci_hz: int, timestamp_ms: int) -> None:
        self._put(NoteInputEvent(NOTE_START, pitch_deci_hz, timestamp_ms))

    def note_ended(self, pitch_deci_hz: int, timestamp_ms: int) -> None:
        self._put(NoteInputEvent(NOTE_END, pitch_deci_hz, timestamp_ms))

    def tap_started(self, timestamp_ms: Optional[int] = None) -> None:
        """Start a note at the default pitch (tap down)."""
        if timestamp_ms is None:
            timestamp_ms = current_timestamp_ms()
        self.note_started(self.config.default_pitch_deci_hz, timestamp_ms)

    def tap_ended(self, timestamp_ms: Optional[int] = None) -> None:
        """End a note at the default pitch (tap up)."""
        if timestamp_ms is None:
            timestamp_ms = current_timestamp_ms()
        self.note_ended(self.config.default_pitch_deci_hz, timestamp_ms)

    def clear(self) -> None:
        """Forget the passage, its start time and any sounding notes."""
        self._put(NoteInputEvent(CLEAR))

    def _put(self, event: NoteInputEvent) -> None:
        if self._closed:
            raise RuntimeError("NoteInputListener is closed")
        self._queue.put(event)

    # Observers

    def subscribe_notes(self, callback: NoteCallback) -> None:
        """Call `callback` with every completed note."""
        with self._lock:
            self._note_subscribers.append(callback)

    def subscribe_passage(self, callback: PassageCallback) -> None:
        """Call `callback` with a passage snapshot after every change."""
        with self._lock:
            self._passage_subscribers.append(callback)

    # State

    @property
    def passage(self) -> RawPassage:
        """Snapshot of the notes completed so far."""
        with self._lock:
            return self._passage.copy()

    @property
    def passage_start_ms(self) -> Optional[int]:
        with self._lock:
            return self._passage_start_ms

    def flush(self) -> None:
        """Block until every queued event has been processed."""
        self._queue.join()

    def close(self) -> None:
        """Process pending events, then stop the worker thread."""
        if self._closed:
            return
        self._closed = True
        self._queue.put(None)
        self._worker.join()

    def __enter__(self) -> "NoteInputListener":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # Worker

    def _run(self) -> None:
        while True:
            event = self._queue.get()
            try:
                if event is None:
                    return
                self._handle(event)
            except Exception:
                logger.exception("Failed to handle note input event %s", event)
            finally:
                self._queue.task_done()

    def _handle(self, event: NoteInputEvent) -> None:
        if event.kind == NOTE_START:
            self._on_note_start(event)
        elif event.kind == NOTE_END:
            self._on_note_end(event)
        elif event.kind == CLEAR:
            self._on_clear()

    def _on_note_start(self, event: NoteInputEvent) -> None:
        with self._lock:
            if self._passage_start_ms is None:
                self._passage_start_ms = event.timestamp_ms
            self._active_notes[event.pitch_deci_hz] = event.timestamp_ms

    def _on_note_end(self, event: NoteInputEvent) -> None:
        with self._lock:
            started_ms = self._active_notes.pop(event.pitch_deci_hz, None)
            if started_ms is None or self._passage_start_ms is None:
                logger.debug("Ignoring note end without a start: %s", event)
                return

            note = RawPassageNote(
                note=RawNote(
                    pitch_deci_hz=event.pitch_deci_hz,
                    duration_ms=max(0, event.timestamp_ms - started_ms),
                ),
                start_offset_ms=started_ms - self._passage_start_ms,
            )
            self._passage.add_note(note)
            snapshot = self._passage.copy()
            note_subscribers = list(self._note_subscribers)
            passage_subscribers = list(self._passage_subscribers)

        for callback in note_subscribers:
            callback(note)
        for callback in passage_subscribers:
            callback(snapshot)

    def _on_clear(self) -> None:
        with self._lock:
            self._passage_start_ms = None
            self._active_notes.clear()
            self._passage.clear()
            snapshot = self._passage.copy()
            passage_subscribers = list(self._passage_subscribers)

        for callback in passage_subscribers:
            callback(snapshot)
