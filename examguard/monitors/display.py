"""
Display Monitor - Multi-monitor detection
"""

import logging
import time
from typing import Callable, Optional

from ..config import ProctorSettings
from ..events import ReportOptions, ViolationKind, ViolationStore
from ..host import HostEnvironment
from ..utils.logging import log_monitor_error
from .base import Monitor

logger = logging.getLogger(__name__)


class DisplayMonitor(Monitor):
    """
    Checks display topology once at start, then every POLL_INTERVAL_MS.

    While extra displays are attached the exam is `blocked`; it unblocks
    on its own once a check comes back clean.
    """

    name = "display"

    def __init__(
        self,
        store: ViolationStore,
        settings: ProctorSettings,
        host: Optional[HostEnvironment] = None,
        clock: Callable[[], float] = time.time
    ):
        super().__init__(store, settings, clock)
        self.host = host or HostEnvironment()
        self.blocked = False

    def _on_start(self):
        self._spawn(self._run())

    async def _run(self):
        try:
            await self.check()
        except Exception as e:
            log_monitor_error(self.session_id, self.name, e)
        await self._every(self.settings.POLL_INTERVAL_MS / 1000, self.check)

    async def check(self):
        result = self.host.detect_multiple_displays()
        if result is None:
            return

        if not result.detected:
            self.blocked = False
            return

        self.blocked = True
        await self.store.report_violation(
            ViolationKind.MULTIPLE_MONITORS,
            ReportOptions(detail=result.reason or "Extended display detected")
        )
