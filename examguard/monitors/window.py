"""
Window Monitor - Tab switches, focus, clipboard, context menu, shortcuts
and the developer-tools viewport heuristic
"""

import asyncio
import logging
import time
from typing import Callable, Optional

from ..config import ProctorSettings
from ..events import ReportOptions, ViolationKind, ViolationStore
from ..host import HostEnvironment, KeyboardHook, KeyCombo, is_blocked_shortcut
from .base import Monitor

logger = logging.getLogger(__name__)

CLIPBOARD_ACTIONS = frozenset({"copy", "cut", "paste"})


class WindowMonitor(Monitor):
    """
    Event handlers awaited by the host, plus a devtools poll.

    Handlers that return a bool tell the host whether to suppress the
    original event. Before `start()` and after `stop()` they record
    nothing and suppress nothing.
    """

    name = "window"

    def __init__(
        self,
        store: ViolationStore,
        settings: ProctorSettings,
        host: Optional[HostEnvironment] = None,
        capture_keyboard: bool = False,
        clock: Callable[[], float] = time.time
    ):
        super().__init__(store, settings, clock)
        self.host = host or HostEnvironment()
        self.hidden_at: Optional[float] = None

        self._hide_report: Optional[asyncio.Task] = None
        self._keyboard_hook = KeyboardHook(self.on_key) if capture_keyboard else None

    def _on_start(self):
        self._spawn(self._every(self.settings.POLL_INTERVAL_MS / 1000, self.check_devtools))
        if self._keyboard_hook is not None:
            try:
                self._keyboard_hook.start()
            except ImportError:
                logger.warning("Global shortcut capture disabled")
                self._keyboard_hook = None

    def _on_stop(self):
        if self._keyboard_hook is not None:
            self._keyboard_hook.stop()

    async def on_visibility_change(self, hidden: bool):
        """
        Page hidden / restored.

        Hidden records TAB_SWITCH at once (with the screen); restored
        patches that record with how long the student was away.
        """
        if not self._running:
            return

        if hidden:
            if self.hidden_at is not None:
                return
            self.hidden_at = self.clock()
            self._hide_report = self._spawn(self.store.report_violation(
                ViolationKind.TAB_SWITCH,
                ReportOptions(capture_screen=True)
            ))
            await asyncio.wait({self._hide_report})
            return

        if self.hidden_at is None:
            return
        away_ms = int((self.clock() - self.hidden_at) * 1000)
        self.hidden_at = None

        pending, self._hide_report = self._hide_report, None
        if pending is not None:
            await asyncio.wait({pending})

        patched = self.store.patch_away(away_ms)
        if patched is not None:
            logger.debug(f"TAB_SWITCH {patched} away for {away_ms} ms")

    async def on_blur(self):
        if self._running:
            await self.store.report_violation(ViolationKind.WINDOW_BLUR)

    async def on_clipboard(self, action: str) -> bool:
        """Copy / cut / paste. Returns True if the host should block it."""
        if not self._running or action not in CLIPBOARD_ACTIONS:
            return False
        await self.store.report_violation(ViolationKind.COPY_ATTEMPT, ReportOptions(detail=action))
        return True

    async def on_context_menu(self) -> bool:
        if not self._running:
            return False
        await self.store.report_violation(ViolationKind.CONTEXT_MENU)
        return True

    async def on_key(self, combo: KeyCombo) -> bool:
        """Key press. Returns True if the combination is blocked."""
        if not self._running or not is_blocked_shortcut(combo):
            return False
        await self.store.report_violation(
            ViolationKind.KEYBOARD_SHORTCUT,
            ReportOptions(detail=combo.describe())
        )
        return True

    async def check_devtools(self):
        """Docked devtools shrink the inner viewport against the outer window"""
        metrics = self.host.viewport_metrics()
        if metrics is None:
            return
        gap_w, gap_h = metrics.gap
        limit = self.settings.DEVTOOLS_GAP_PX
        if gap_w > limit or gap_h > limit:
            await self.store.report_violation(
                ViolationKind.DEVTOOLS_OPEN,
                ReportOptions(detail=f"viewport gap {gap_w}x{gap_h}px")
            )
