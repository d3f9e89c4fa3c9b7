"""
Fullscreen Monitor - Records leaving fullscreen and blocks the exam until return
"""

import logging

from ..events import CaptureSource, CaptureTrigger, ReportOptions, ViolationKind
from .base import Monitor

logger = logging.getLogger(__name__)


class FullscreenMonitor(Monitor):
    """Handles fullscreen changes reported by the host."""

    name = "fullscreen"

    blocked = False

    async def on_fullscreen_change(self, active: bool):
        if not self._running:
            return

        if active:
            self.blocked = False
            return

        self.blocked = True
        shot = await self.store.capture(CaptureSource.SCREEN)
        if shot:
            self.store.log_capture(CaptureSource.SCREEN, shot, CaptureTrigger.FULLSCREEN_EXIT)
        await self.store.report_violation(
            ViolationKind.FULLSCREEN_EXIT,
            ReportOptions(capture_screen=True)
        )
