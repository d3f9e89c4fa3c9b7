"""Host window, display and input integration"""

from .base import DisplayCheck, HostEnvironment, ViewportMetrics
from .keyboard import KeyboardHook, KeyCombo, is_blocked_shortcut

__all__ = [
    "DisplayCheck",
    "HostEnvironment",
    "ViewportMetrics",
    "KeyboardHook",
    "KeyCombo",
    "is_blocked_shortcut",
]
