"""
Periodic Capture Monitor - Routine webcam and screen evidence snapshots
"""

import asyncio
import logging

from ..events import CaptureSource, CaptureTrigger
from .base import Monitor

logger = logging.getLogger(__name__)


class PeriodicCaptureMonitor(Monitor):
    """Logs a webcam and a screen capture every PERIODIC_CAPTURE_MS."""

    name = "capture"

    def _on_start(self):
        self._spawn(self._every(self.settings.PERIODIC_CAPTURE_MS / 1000, self.capture_once))

    async def capture_once(self) -> int:
        """Take one round of captures. Returns how many were logged."""
        webcam_shot, screen_shot = await asyncio.gather(
            self.store.capture(CaptureSource.WEBCAM),
            self.store.capture(CaptureSource.SCREEN)
        )
        logged = 0
        for source, shot in ((CaptureSource.WEBCAM, webcam_shot), (CaptureSource.SCREEN, screen_shot)):
            if shot and self.store.log_capture(source, shot, CaptureTrigger.PERIODIC):
                logged += 1
        return logged
