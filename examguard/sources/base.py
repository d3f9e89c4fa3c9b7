"""
Media Sources - Live frame and sample sources consumed by the engine

The engine never opens devices itself. Collaborators hand it already-open
sources; the push-fed FrameBuffer / SampleBuffer cover any producer
(browser bridge, capture thread, test fixture), and the device adapters in
this package build on them.
"""

import logging
import threading
from abc import ABC, abstractmethod
from collections import deque
from typing import Callable, Dict, List, Optional

import numpy as np

logger = logging.getLogger(__name__)

EndedCallback = Callable[[], None]

# Screen-share surfaces; only a full display is acceptable
SURFACE_MONITOR = "monitor"
SURFACE_WINDOW = "window"
SURFACE_BROWSER = "browser"


class MediaSource(ABC):
    """
    A live media track.

    `stop()` is a deliberate release by the engine and does not notify
    listeners. `end()` means the track died underneath us (device
    unplugged, user pressed "stop sharing") and fires the ended callbacks
    once. Both are idempotent.
    """

    def __init__(self):
        self._live = True
        self._lock = threading.Lock()
        self._ended_callbacks: List[EndedCallback] = []

    @property
    def live(self) -> bool:
        return self._live

    def add_ended_callback(self, callback: EndedCallback):
        with self._lock:
            if callback not in self._ended_callbacks:
                self._ended_callbacks.append(callback)

    def remove_ended_callback(self, callback: EndedCallback):
        with self._lock:
            if callback in self._ended_callbacks:
                self._ended_callbacks.remove(callback)

    def stop(self):
        """Release the source. Safe to call on an already-closed source."""
        with self._lock:
            if not self._live:
                return
            self._live = False
        self._release()

    def end(self):
        """Mark the source as ended by its producer and notify listeners."""
        with self._lock:
            if not self._live:
                return
            self._live = False
            callbacks = list(self._ended_callbacks)
        self._release()
        for callback in callbacks:
            try:
                callback()
            except Exception:
                logger.exception("Ended callback failed")

    def _release(self):
        """Free underlying device handles"""


class FrameSource(MediaSource):
    """A live video track (webcam or screen share)."""

    def __init__(self, surface: Optional[str] = None):
        super().__init__()
        self.surface = surface

    @abstractmethod
    def read(self) -> Optional[np.ndarray]:
        """Return the current BGR frame, or None if none is available"""


class AudioSource(MediaSource):
    """A live mono microphone track."""

    def __init__(self, sample_rate: int):
        super().__init__()
        self.sample_rate = sample_rate

    @abstractmethod
    def read(self, frames: int) -> Optional[np.ndarray]:
        """Return the most recent `frames` samples as float32 in [-1, 1]"""

    @abstractmethod
    def begin_capture(self, preroll: int = 0) -> int:
        """
        Start accumulating every incoming sample; returns a capture token.

        The capture opens with up to `preroll` samples already in the history.
        """

    @abstractmethod
    def end_capture(self, token: int) -> np.ndarray:
        """Stop a capture and return what it accumulated"""


class FrameBuffer(FrameSource):
    """Frame source fed by `push()`; `read()` returns the latest frame."""

    def __init__(self, surface: Optional[str] = None):
        super().__init__(surface=surface)
        self._frame: Optional[np.ndarray] = None

    def push(self, frame: np.ndarray):
        if self._live:
            self._frame = frame

    def read(self) -> Optional[np.ndarray]:
        if not self._live or self._frame is None:
            return None
        return self._frame.copy()

    def _release(self):
        self._frame = None


class SampleBuffer(AudioSource):
    """
    Audio source fed by `push()`.

    Keeps a short history for spectrum reads and routes every pushed
    block into any open captures.
    """

    def __init__(self, sample_rate: int = 16000, history_seconds: float = 1.0):
        super().__init__(sample_rate)
        self._capacity = max(1, int(sample_rate * history_seconds))
        self._history: deque = deque()
        self._history_len = 0
        self._captures: Dict[int, List[np.ndarray]] = {}
        self._next_token = 0
        self._buffer_lock = threading.Lock()

    def push(self, block: np.ndarray):
        if not self._live:
            return
        block = np.asarray(block, dtype=np.float32).ravel()
        if block.size == 0:
            return
        with self._buffer_lock:
            self._history.append(block)
            self._history_len += block.size
            while self._history_len - self._history[0].size >= self._capacity:
                self._history_len -= self._history.popleft().size
            for chunks in self._captures.values():
                chunks.append(block)

    def read(self, frames: int) -> Optional[np.ndarray]:
        if not self._live:
            return None
        with self._buffer_lock:
            if not self._history:
                return None
            data = np.concatenate(list(self._history))
        return data[-frames:]

    def begin_capture(self, preroll: int = 0) -> int:
        with self._buffer_lock:
            token = self._next_token
            self._next_token += 1
            chunks = []
            if preroll > 0 and self._history:
                chunks.append(np.concatenate(list(self._history))[-preroll:])
            self._captures[token] = chunks
        return token

    def end_capture(self, token: int) -> np.ndarray:
        with self._buffer_lock:
            chunks = self._captures.pop(token, [])
        if not chunks:
            return np.zeros(0, dtype=np.float32)
        return np.concatenate(chunks)

    def _release(self):
        with self._buffer_lock:
            self._history.clear()
            self._history_len = 0
