"""
Proctor Session - Exam clock, monitor orchestration and the finalizer
"""

import asyncio
import logging
import threading
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .config import ProctorSettings, get_settings
from .detectors import FaceDetector, HeadPoseEstimator, SpeechDetector
from .events import (
    AudioClip,
    CaptureLog,
    CaptureSource,
    Severity,
    Violation,
    ViolationStore,
)
from .events.store import ViolationListener
from .exceptions import SessionNotActive
from .host import HostEnvironment
from .monitors import (
    AudioMonitor,
    DisplayMonitor,
    FaceMonitor,
    FaceStatus,
    FullscreenMonitor,
    Monitor,
    PeriodicCaptureMonitor,
    ScreenShareMonitor,
    WindowMonitor,
)
from .sources import AudioSource, FrameSource
from .utils.logging import log_monitor_error, log_session_end, log_session_start
from .utils.signal import format_time

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    ACTIVE = "active"
    FINALIZING = "finalizing"
    SUBMITTED = "submitted"


class FinalizeReason(str, Enum):
    TIME_UP = "time_up"
    MANUAL_SUBMIT = "manual_submit"
    SCREEN_SHARE_LOST = "screen_share_lost"


@dataclass(frozen=True)
class LiveStatus:
    """Presentation snapshot of a running session"""
    face_status: FaceStatus
    screen_ok: bool
    audio_level: float
    time_left: int
    fullscreen_blocked: bool
    display_blocked: bool
    reshare_seconds_left: Optional[int]
    calibrating: bool
    violation_count: int
    state: SessionState

    @property
    def countdown(self) -> str:
        return format_time(self.time_left)


@dataclass(frozen=True)
class SessionResult:
    """Terminal payload handed to the submission callback"""
    session_id: str
    reason: FinalizeReason
    violations: Tuple[Violation, ...]
    captures: Tuple[CaptureLog, ...]
    audio_clips: Tuple[AudioClip, ...]
    elapsed_seconds: int
    finished_at: datetime

    def summary(self) -> Dict[str, int]:
        """Counts shown on the results page"""
        return {
            "total_violations": len(self.violations),
            "critical_violations": sum(1 for v in self.violations if v.severity is Severity.ERROR),
            "webcam_captures": sum(1 for c in self.captures if c.source is CaptureSource.WEBCAM),
            "screen_captures": sum(1 for c in self.captures if c.source is CaptureSource.SCREEN),
            "audio_clips": len(self.audio_clips)
        }


SubmitCallback = Callable[[SessionResult], None]


class ProctorSession:
    """
    Manages a single proctored exam.

    Owns the violation store and every monitor, counts the exam down and
    finalizes exactly once: on time-up, on manual submit, or when the
    screen share is lost for good.
    """

    def __init__(
        self,
        *,
        webcam: Optional[FrameSource],
        screen: Optional[FrameSource],
        microphone: Optional[AudioSource],
        reference_embedding: Optional[Sequence[float]],
        on_submit: Optional[SubmitCallback],
        settings: Optional[ProctorSettings] = None,
        host: Optional[HostEnvironment] = None,
        face_detector: Optional[FaceDetector] = None,
        pose_estimator: Optional[HeadPoseEstimator] = None,
        speech_detector: Optional[SpeechDetector] = None,
        on_violation: Optional[ViolationListener] = None,
        capture_keyboard: bool = False,
        clock: Callable[[], float] = time.time,
        session_id: Optional[str] = None
    ):
        """
        Initialize a new proctoring session.

        Args:
            webcam: Live webcam source
            screen: Live screen-share source
            microphone: Live microphone source
            reference_embedding: Enrollment embedding for identity checks
            on_submit: Receives the SessionResult exactly once
            settings: Engine settings (defaults to get_settings())
            host: Window / display integration
            face_detector: Override for the dlib face detector
            pose_estimator: Override for the head pose estimator
            speech_detector: Override for the VAD
            on_violation: Called after each recorded violation
            capture_keyboard: Install a global pynput keyboard hook
            clock: Wall clock in seconds
            session_id: Optional custom session ID (auto-generated if not provided)
        """
        self.id = session_id or f"EXM_{uuid.uuid4().hex[:6].upper()}"
        self.settings = settings or get_settings()
        self.host = host or HostEnvironment()
        self.on_submit = on_submit
        self.clock = clock

        self.webcam = webcam
        self.screen = screen
        self.microphone = microphone

        self.time_left = self.settings.DURATION_SECONDS

        self._state = SessionState.ACTIVE
        self._state_lock = threading.Lock()
        self._started = False
        self._clock_task: Optional[asyncio.Task] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._closed: Optional[asyncio.Event] = None
        self._result: Optional[SessionResult] = None

        self.store = ViolationStore(
            self.id,
            self.settings,
            webcam=webcam,
            screen=screen,
            clock=clock,
            on_violation=on_violation
        )

        self.face = FaceMonitor(
            self.store, self.settings,
            webcam=webcam,
            reference_embedding=reference_embedding,
            detector=face_detector,
            pose_estimator=pose_estimator,
            clock=clock
        )
        self.audio = AudioMonitor(
            self.store, self.settings,
            microphone=microphone,
            speech_detector=speech_detector,
            clock=clock
        )
        self.window = WindowMonitor(
            self.store, self.settings,
            host=self.host,
            capture_keyboard=capture_keyboard,
            clock=clock
        )
        self.fullscreen = FullscreenMonitor(self.store, self.settings, clock=clock)
        self.display = DisplayMonitor(self.store, self.settings, host=self.host, clock=clock)
        self.screen_share = ScreenShareMonitor(
            self.store, self.settings,
            screen=screen,
            on_lost=lambda: self.finalize(FinalizeReason.SCREEN_SHARE_LOST),
            clock=clock
        )
        self.capture = PeriodicCaptureMonitor(self.store, self.settings, clock=clock)

        self.monitors: List[Monitor] = [
            self.face,
            self.audio,
            self.window,
            self.fullscreen,
            self.display,
            self.screen_share,
            self.capture
        ]

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def result(self) -> Optional[SessionResult]:
        return self._result

    @property
    def elapsed_seconds(self) -> int:
        return self.settings.DURATION_SECONDS - self.time_left

    async def start(self):
        """
        Start the exam clock and, when monitoring is enabled, every monitor.

        Raises:
            SessionNotActive: the session has already been finalized
        """
        if self._state is not SessionState.ACTIVE:
            raise SessionNotActive(f"Session {self.id} is {self._state.value}")
        if self._started:
            return
        self._started = True
        self._loop = asyncio.get_running_loop()
        if self._closed is None:
            self._closed = asyncio.Event()

        log_session_start(self.id, self.settings.DURATION_SECONDS, self.settings.MONITORING_ENABLED)
        self._clock_task = asyncio.ensure_future(self._run_clock())

        if not self.settings.MONITORING_ENABLED:
            return
        for monitor in self.monitors:
            try:
                monitor.start()
            except Exception as e:
                log_monitor_error(self.id, monitor.name, e)

    async def _run_clock(self):
        while self.time_left > 0:
            await asyncio.sleep(self.settings.CLOCK_TICK_SECONDS)
            self.time_left -= 1
        self.finalize(FinalizeReason.TIME_UP)

    def reshare(self, source: FrameSource):
        """Hand over a replacement screen share (see ScreenShareMonitor.reshare)"""
        self.screen_share.reshare(source)

    def request_submit(self) -> bool:
        """Student confirmed submission"""
        return self.finalize(FinalizeReason.MANUAL_SUBMIT)

    def status(self) -> LiveStatus:
        return LiveStatus(
            face_status=self.face.status,
            screen_ok=self.screen_share.screen_ok,
            audio_level=self.audio.level,
            time_left=self.time_left,
            fullscreen_blocked=self.fullscreen.blocked,
            display_blocked=self.display.blocked,
            reshare_seconds_left=self.screen_share.reshare_seconds_left,
            calibrating=self.audio.calibrating,
            violation_count=len(self.store.violations),
            state=self._state
        )

    def finalize(self, reason: FinalizeReason) -> bool:
        """
        End the session. The first caller wins; later calls return False.

        Every teardown step runs even if an earlier one fails. Called from a
        thread other than the session's event loop, the teardown is
        scheduled onto that loop and `wait_closed()` delivers the result.

        Returns:
            True if this call finalized the session
        """
        with self._state_lock:
            if self._state is not SessionState.ACTIVE:
                return False
            self._state = SessionState.FINALIZING

        logger.info(f"Finalizing session {self.id}: {reason.value} with {format_time(self.time_left)} left")
        elapsed = self.elapsed_seconds

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        loop = self._loop
        if loop is not None and loop is not running and loop.is_running():
            loop.call_soon_threadsafe(self._teardown, reason, elapsed)
        else:
            self._teardown(reason, elapsed)
        return True

    def _teardown(self, reason: FinalizeReason, elapsed: int):
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None

        self._safely("freeze store", self.store.freeze)

        for monitor in self.monitors:
            self._safely(f"stop {monitor.name}", monitor.stop, current)

        if self._clock_task is not None and self._clock_task is not current:
            self._clock_task.cancel()

        for source in self._sources():
            self._safely("stop source", source.stop)

        self._safely("exit fullscreen", self._exit_fullscreen)

        violations, captures, audio_clips = self.store.snapshot()
        result = SessionResult(
            session_id=self.id,
            reason=reason,
            violations=violations,
            captures=captures,
            audio_clips=audio_clips,
            elapsed_seconds=elapsed,
            finished_at=datetime.now(timezone.utc)
        )
        self._result = result
        with self._state_lock:
            self._state = SessionState.SUBMITTED

        log_session_end(self.id, reason.value, len(violations), result.elapsed_seconds)
        self._notify_closed()

        if self.on_submit is not None:
            try:
                self.on_submit(result)
            except Exception:
                logger.exception(f"Submission failed for session {self.id}")

    async def wait_closed(self) -> SessionResult:
        """Wait for the session to finalize and return its result"""
        if self._result is None:
            if self._closed is None:
                self._loop = asyncio.get_running_loop()
                self._closed = asyncio.Event()
            await self._closed.wait()
        return self._result

    def _sources(self) -> list:
        sources = []
        for source in (self.webcam, self.screen, self.screen_share.screen, self.microphone):
            if source is not None and all(source is not s for s in sources):
                sources.append(source)
        return sources

    def _exit_fullscreen(self):
        if self.host.is_fullscreen():
            self.host.exit_fullscreen()

    def _notify_closed(self):
        if self._closed is None:
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is not None and running is self._loop:
            self._closed.set()
        elif self._loop is not None and not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._closed.set)

    def _safely(self, step: str, fn: Callable, *args):
        try:
            fn(*args)
        except Exception as e:
            logger.warning(f"Finalize step '{step}' failed for session {self.id}: {e}")
