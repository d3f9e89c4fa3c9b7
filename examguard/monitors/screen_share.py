"""
Screen Share Monitor - Enforces a continuous full-screen share

The first time the share drops the student gets a short grace countdown
to share again; a second drop, or an expired countdown, ends the exam.
"""

import asyncio
import logging
import time
from typing import Callable, Optional

from ..config import ProctorSettings
from ..events import ReportOptions, ViolationKind, ViolationStore
from ..exceptions import ReshareRejected
from ..sources import SURFACE_MONITOR, FrameSource
from ..utils.logging import log_critical_event, log_proctor_event
from .base import Monitor

logger = logging.getLogger(__name__)


class ScreenShareMonitor(Monitor):
    """
    Watches the screen source's ended event.

    The ended callback can fire on any thread; it is marshalled onto the
    event loop before touching monitor state.
    """

    name = "screen_share"

    def __init__(
        self,
        store: ViolationStore,
        settings: ProctorSettings,
        screen: Optional[FrameSource] = None,
        on_lost: Optional[Callable[[], object]] = None,
        clock: Callable[[], float] = time.time
    ):
        """
        Args:
            store: Violation store
            settings: Grace period and tick length
            screen: Current screen-share source
            on_lost: Called once when the share is lost for good
            clock: Wall clock
        """
        super().__init__(store, settings, clock)
        self.screen = screen
        self.on_lost = on_lost

        self.stop_count = 0
        self.screen_ok = screen is not None and screen.live
        self.reshare_seconds_left: Optional[int] = None

        self._countdown: Optional[asyncio.Task] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def awaiting_reshare(self) -> bool:
        return self._countdown is not None and not self._countdown.done()

    def _on_start(self):
        self._loop = asyncio.get_running_loop()
        if self.screen is None:
            logger.info("No screen source, screen-share monitoring off")
            return
        self.screen.add_ended_callback(self._on_track_ended)

    def _on_stop(self):
        if self.screen is not None:
            self.screen.remove_ended_callback(self._on_track_ended)

    def _on_track_ended(self):
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        try:
            loop.call_soon_threadsafe(self._schedule_track_ended)
        except RuntimeError:
            logger.debug("Event loop closed before screen-share end was handled")

    def _schedule_track_ended(self):
        if self._running:
            self._spawn(self.handle_track_ended())

    async def handle_track_ended(self):
        """The screen share stopped underneath us"""
        if not self._running:
            return

        self.stop_count += 1
        self.screen_ok = False
        if self.screen is not None:
            self.screen.remove_ended_callback(self._on_track_ended)

        if self.stop_count >= 2:
            self._cancel_countdown()
            await self.store.report_violation(
                ViolationKind.SCREEN_SHARE_STOPPED,
                ReportOptions(
                    detail="Screen sharing stopped a second time, exam ended",
                    bypass_cooldown=True
                )
            )
            self._lose()
            return

        self._countdown = self._spawn(self._run_countdown())
        await self.store.report_violation(
            ViolationKind.SCREEN_SHARE_STOPPED,
            ReportOptions(detail=f"Re-share within {self.settings.RESHARE_GRACE_SECONDS}s")
        )

    def reshare(self, source: FrameSource):
        """
        Accept a replacement screen share during the grace countdown.

        Raises:
            ReshareRejected: nothing pending, source not live, or not a
                             whole-display share
        """
        if not self.awaiting_reshare:
            raise ReshareRejected("no re-share is pending")
        if source is None or not source.live:
            raise ReshareRejected("screen source is not live")
        if source.surface is not None and source.surface != SURFACE_MONITOR:
            raise ReshareRejected(f"entire screen required, got {source.surface}")

        self._cancel_countdown()
        self.screen = source
        self.store.set_screen_source(source)
        source.add_ended_callback(self._on_track_ended)
        self.screen_ok = True
        log_proctor_event(self.session_id, "screen_reshared", {"stops": self.stop_count})

    async def _run_countdown(self):
        # One countdown step per session clock tick
        tick = self.settings.CLOCK_TICK_SECONDS
        for remaining in range(self.settings.RESHARE_GRACE_SECONDS, 0, -1):
            self.reshare_seconds_left = remaining
            await asyncio.sleep(tick)
        self.reshare_seconds_left = 0

        if self.screen_ok and self.screen is not None and self.screen.live:
            return
        self._lose()

    def _cancel_countdown(self):
        if self._countdown is not None and not self._countdown.done():
            self._countdown.cancel()
        self._countdown = None
        self.reshare_seconds_left = None

    def _lose(self):
        log_critical_event(self.session_id, "screen_share_lost", {"stops": self.stop_count})
        if self.on_lost is not None:
            self.on_lost()
