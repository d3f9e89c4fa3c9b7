"""
Monitor Base - Lifecycle shared by every integrity monitor
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, List, Optional

from ..config import ProctorSettings
from ..events import ViolationStore
from ..utils.logging import log_monitor_error

logger = logging.getLogger(__name__)


class Monitor:
    """
    Base class for monitors.

    A monitor holds a reference to the store and the settings and keeps
    only transient counters of its own. Polling work runs in asyncio tasks
    spawned through `_spawn` / `_every`; `stop()` cancels them.
    """

    name = "monitor"

    def __init__(
        self,
        store: ViolationStore,
        settings: ProctorSettings,
        clock: Callable[[], float] = time.time
    ):
        self.store = store
        self.settings = settings
        self.clock = clock

        self._tasks: List[asyncio.Task] = []
        self._running = False
        self._stopped = False

    @property
    def session_id(self) -> str:
        return self.store.session_id

    @property
    def running(self) -> bool:
        return self._running

    def start(self):
        """Start monitoring. Must be called from the event loop."""
        if self._running or self._stopped:
            return
        self._running = True
        self._on_start()

    def stop(self, spare: Optional[asyncio.Task] = None):
        """
        Stop monitoring and cancel owned tasks. Idempotent.

        Args:
            spare: Task not to cancel (the task running the finalizer)
        """
        if self._stopped:
            return
        self._stopped = True
        self._running = False

        for task in list(self._tasks):
            if task is not spare and not task.done():
                task.cancel()
        self._tasks.clear()

        try:
            self._on_stop()
        except Exception as e:
            log_monitor_error(self.session_id, self.name, e)

    def _on_start(self):
        """Spawn tasks / subscribe to sources"""

    def _on_stop(self):
        """Release subscriptions"""

    def _spawn(self, coro: Awaitable) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._tasks.append(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task):
        if task in self._tasks:
            self._tasks.remove(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            log_monitor_error(self.session_id, self.name, error)

    async def _every(self, interval_s: float, fn: Callable[[], Awaitable[None]]):
        """Run `fn` every `interval_s` seconds; a failing cycle is logged and skipped."""
        while True:
            await asyncio.sleep(interval_s)
            try:
                await fn()
            except Exception as e:
                log_monitor_error(self.session_id, self.name, e)
