"""
Violation Event Store - Single owner of all evidentiary records

Every monitor writes through `report_violation` / `log_capture` /
`attach_audio_clip`; nothing else mutates the record lists. Append order is
the cross-monitor ordering of the audit log.
"""

import asyncio
import dataclasses
import logging
import threading
import time
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple

from ..config import ProctorSettings
from ..utils.logging import log_violation_recorded
from ..utils.signal import snap_source
from .models import (
    KIND_CONFIG,
    AudioClip,
    CaptureLog,
    CaptureSource,
    CaptureTrigger,
    ReportOptions,
    Violation,
    ViolationKind,
    new_id,
)

logger = logging.getLogger(__name__)

# Every occurrence carries its own away-duration, so none may be cooled down
COOLDOWN_EXEMPT = frozenset({ViolationKind.TAB_SWITCH})

ViolationListener = Callable[[Violation], None]


class ViolationStore:
    """
    Append-only store of violations, captures and audio clips.

    The cooldown table and record lists are guarded by one lock so
    callbacks arriving from device threads stay consistent with the event
    loop. Snapshots are taken outside the lock.
    """

    def __init__(
        self,
        session_id: str,
        settings: ProctorSettings,
        webcam=None,
        screen=None,
        clock: Callable[[], float] = time.time,
        on_violation: Optional[ViolationListener] = None
    ):
        """
        Args:
            session_id: Owning session, for logging
            settings: Cooldowns and snapshot quality
            webcam: FrameSource for webcam snapshots
            screen: FrameSource for screen snapshots
            clock: Wall clock in seconds
            on_violation: Optional listener called after each append
        """
        self.session_id = session_id
        self.settings = settings
        self.clock = clock
        self.on_violation = on_violation

        self._webcam = webcam
        self._screen = screen
        self._lock = threading.Lock()
        self._frozen = False

        self._cooldowns: Dict[ViolationKind, Optional[float]] = {kind: None for kind in ViolationKind}
        self._violations: List[Violation] = []
        self._captures: List[CaptureLog] = []
        self._audio_clips: List[AudioClip] = []

    # ---------- properties ----------

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def violations(self) -> Tuple[Violation, ...]:
        with self._lock:
            return tuple(self._violations)

    @property
    def captures(self) -> Tuple[CaptureLog, ...]:
        with self._lock:
            return tuple(self._captures)

    @property
    def audio_clips(self) -> Tuple[AudioClip, ...]:
        with self._lock:
            return tuple(self._audio_clips)

    def snapshot(self) -> Tuple[Tuple[Violation, ...], Tuple[CaptureLog, ...], Tuple[AudioClip, ...]]:
        """Consistent copy of all three record lists"""
        with self._lock:
            return tuple(self._violations), tuple(self._captures), tuple(self._audio_clips)

    def freeze(self):
        """Stop accepting records. Late callbacks become no-ops."""
        with self._lock:
            self._frozen = True

    def set_screen_source(self, source):
        self._screen = source

    # ---------- violations ----------

    def cooldown_ms(self, kind: ViolationKind) -> int:
        if kind is ViolationKind.NOISE_DETECTED:
            return self.settings.NOISE_COOLDOWN_MS
        return self.settings.COOLDOWN_MS

    def _claim(self, kind: ViolationKind, bypass: bool, now: float) -> bool:
        """Atomically check and stamp the cooldown table"""
        with self._lock:
            if self._frozen:
                return False
            if not bypass and kind not in COOLDOWN_EXEMPT:
                last = self._cooldowns[kind]
                if last is not None and (now - last) * 1000 < self.cooldown_ms(kind):
                    return False
            self._cooldowns[kind] = now
            return True

    async def report_violation(
        self,
        kind: ViolationKind,
        options: Optional[ReportOptions] = None
    ) -> Optional[str]:
        """
        Record a violation.

        Applies the cooldown policy, snapshots the webcam (always) and the
        screen (on request), appends the record and its captures.

        Args:
            kind: Violation kind
            options: Screen capture, away-duration, detail, cooldown bypass,
                     pre-recorded audio reference

        Returns:
            The new violation id, or None if cooled down or frozen
        """
        options = options or ReportOptions()
        now = self.clock()

        if not self._claim(kind, options.bypass_cooldown, now):
            logger.debug(f"{kind.value} suppressed (cooldown or frozen)")
            return None

        timestamp = datetime.fromtimestamp(now, tz=timezone.utc)
        webcam_shot, screen_shot = await asyncio.gather(
            self.capture(CaptureSource.WEBCAM),
            self.capture(CaptureSource.SCREEN) if options.capture_screen else _nothing()
        )

        config = KIND_CONFIG[kind]
        violation = Violation(
            id=new_id(),
            kind=kind,
            label=config.label,
            severity=config.severity,
            timestamp=timestamp,
            webcam_shot=webcam_shot,
            screen_shot=screen_shot,
            audio_ref=options.audio_ref,
            away_ms=options.away_ms,
            detail=options.detail
        )

        with self._lock:
            if self._frozen:
                logger.debug(f"{kind.value} dropped: store frozen during capture")
                return None
            self._violations.append(violation)
            if webcam_shot:
                self._captures.append(self._capture_entry(
                    CaptureSource.WEBCAM, webcam_shot, CaptureTrigger.VIOLATION, timestamp))
            if screen_shot:
                self._captures.append(self._capture_entry(
                    CaptureSource.SCREEN, screen_shot, CaptureTrigger.VIOLATION, timestamp))

        log_violation_recorded(self.session_id, kind.value, options.detail)

        if self.on_violation is not None:
            try:
                self.on_violation(violation)
            except Exception as e:
                logger.warning(f"Violation listener failed: {e}")

        return violation.id

    def patch_away(self, away_ms: int, kind: ViolationKind = ViolationKind.TAB_SWITCH) -> Optional[str]:
        """
        Set the away-duration on the most recent record of `kind` that has none.

        Returns:
            The patched violation id, or None if nothing was patched
        """
        with self._lock:
            if self._frozen:
                return None
            for i in range(len(self._violations) - 1, -1, -1):
                v = self._violations[i]
                if v.kind is kind and v.away_ms is None:
                    self._violations[i] = dataclasses.replace(v, away_ms=max(0, int(away_ms)))
                    return v.id
        return None

    # ---------- captures ----------

    async def capture(self, source: CaptureSource) -> Optional[bytes]:
        """Snapshot the current webcam or screen source (None on failure)"""
        frame_source = self._webcam if source is CaptureSource.WEBCAM else self._screen
        if frame_source is None or not frame_source.live:
            return None
        return await asyncio.to_thread(snap_source, frame_source, self.settings.SNAPSHOT_JPEG_QUALITY)

    def _capture_entry(self, source, image, trigger, timestamp=None) -> CaptureLog:
        return CaptureLog(
            id=new_id(),
            timestamp=timestamp or datetime.fromtimestamp(self.clock(), tz=timezone.utc),
            source=source,
            image=image,
            trigger=trigger
        )

    def log_capture(self, source: CaptureSource, image: bytes, trigger: CaptureTrigger) -> Optional[str]:
        """Append a capture-log entry. Returns its id, or None if frozen."""
        entry = self._capture_entry(source, image, trigger)
        with self._lock:
            if self._frozen:
                return None
            self._captures.append(entry)
        return entry.id

    # ---------- audio ----------

    def attach_audio_clip(self, payload: bytes, violation_id: Optional[str] = None) -> Optional[AudioClip]:
        """
        Append an audio clip and link it to its violation.

        Returns:
            The stored clip, or None if frozen
        """
        clip = AudioClip(
            id=new_id(),
            timestamp=datetime.fromtimestamp(self.clock(), tz=timezone.utc),
            payload=payload,
            violation_id=violation_id
        )
        with self._lock:
            if self._frozen:
                return None
            self._audio_clips.append(clip)
            if violation_id is not None:
                for i, v in enumerate(self._violations):
                    if v.id == violation_id:
                        self._violations[i] = dataclasses.replace(v, audio_ref=clip.id)
                        break
        return clip


async def _nothing():
    return None
