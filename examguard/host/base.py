"""
Host Environment - Window and display facts the engine polls

The exam shell (browser bridge, kiosk app, desktop wrapper) implements
this to expose viewport geometry, display topology and fullscreen control.
The base class answers "unknown" for everything, which leaves the
dependent checks inert instead of guessing.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ViewportMetrics:
    """Outer window size vs. inner content size, in pixels"""
    outer_width: int
    outer_height: int
    inner_width: int
    inner_height: int

    @property
    def gap(self) -> tuple:
        return (
            self.outer_width - self.inner_width,
            self.outer_height - self.inner_height
        )


@dataclass(frozen=True)
class DisplayCheck:
    """Result of a display-topology probe"""
    detected: bool
    reason: str = ""


class HostEnvironment:
    """Default host: no viewport, topology or fullscreen information."""

    def viewport_metrics(self) -> Optional[ViewportMetrics]:
        return None

    def detect_multiple_displays(self) -> Optional[DisplayCheck]:
        return None

    def is_fullscreen(self) -> bool:
        return False

    def exit_fullscreen(self):
        pass
