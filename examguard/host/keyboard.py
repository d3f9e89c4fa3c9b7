"""
Keyboard - Blocked-shortcut denylist and a global key hook

The denylist covers reload/fullscreen/devtools function keys, browser
devtools and source/save/print shortcuts, and OS app-switch combinations.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Set

logger = logging.getLogger(__name__)

BLOCKED_KEYS = frozenset({"F12", "F11", "F5"})
BLOCKED_CTRL_SHIFT = frozenset({"I", "J", "C"})
BLOCKED_CTRL = frozenset({"U", "S", "P"})
BLOCKED_META = frozenset({"H", "M"})


@dataclass(frozen=True)
class KeyCombo:
    """A key press together with its held modifiers"""
    key: str
    ctrl: bool = False
    shift: bool = False
    alt: bool = False
    meta: bool = False

    def describe(self) -> str:
        """e.g. 'Ctrl+Shift+I' (Meta counts as Ctrl, as on macOS)"""
        parts = []
        if self.ctrl or self.meta:
            parts.append("Ctrl")
        if self.shift:
            parts.append("Shift")
        if self.alt:
            parts.append("Alt")
        parts.append(self.key)
        return "+".join(parts)


def is_blocked_shortcut(combo: KeyCombo) -> bool:
    """Check a key combination against the denylist"""
    ctrl = combo.ctrl or combo.meta
    key = combo.key
    upper = key.upper()

    if key in BLOCKED_KEYS:
        return True
    if ctrl and combo.shift and upper in BLOCKED_CTRL_SHIFT:
        return True
    if ctrl and upper in BLOCKED_CTRL:
        return True
    if (combo.alt or combo.meta) and key == "Tab":
        return True
    if combo.meta and upper in BLOCKED_META:
        return True
    return False


class KeyboardHook:
    """
    Global keyboard listener built on pynput.

    Tracks held modifiers and forwards every non-modifier press as a
    KeyCombo to an async handler on the engine's event loop. The listener
    runs on its own thread.
    """

    def __init__(
        self,
        handler: Callable[[KeyCombo], Awaitable[bool]],
        loop: Optional[asyncio.AbstractEventLoop] = None
    ):
        self.handler = handler
        self.loop = loop
        self._held: Set[str] = set()
        self._listener = None

    def start(self):
        try:
            from pynput import keyboard
        except ImportError:
            logger.error("pynput not installed. Run: pip install pynput")
            raise

        self._keyboard = keyboard
        self.loop = self.loop or asyncio.get_running_loop()
        self._listener = keyboard.Listener(on_press=self._on_press, on_release=self._on_release)
        self._listener.start()
        logger.info("Keyboard hook started")

    def stop(self):
        if self._listener is not None:
            self._listener.stop()
            self._listener = None
            logger.info("Keyboard hook stopped")

    def _modifier(self, key) -> Optional[str]:
        k = self._keyboard.Key
        groups = {
            "ctrl": (k.ctrl, k.ctrl_l, k.ctrl_r),
            "shift": (k.shift, k.shift_l, k.shift_r),
            "alt": (k.alt, k.alt_l, k.alt_r, k.alt_gr),
            "meta": (k.cmd, k.cmd_l, k.cmd_r),
        }
        for name, keys in groups.items():
            if key in keys:
                return name
        return None

    def _key_name(self, key) -> Optional[str]:
        char = getattr(key, "char", None)
        if char:
            # Ctrl+letter arrives as a control character on some platforms
            if ord(char) < 32:
                char = chr(ord(char) + 64)
            return char
        name = getattr(key, "name", None)
        if not name:
            return None
        if name.startswith("f") and name[1:].isdigit():
            return name.upper()
        return name.capitalize()

    def _on_press(self, key):
        modifier = self._modifier(key)
        if modifier:
            self._held.add(modifier)
            return

        name = self._key_name(key)
        if name is None or self.loop is None:
            return
        combo = KeyCombo(
            key=name,
            ctrl="ctrl" in self._held,
            shift="shift" in self._held,
            alt="alt" in self._held,
            meta="meta" in self._held
        )
        asyncio.run_coroutine_threadsafe(self.handler(combo), self.loop)

    def _on_release(self, key):
        modifier = self._modifier(key)
        if modifier:
            self._held.discard(modifier)
