"""Integrity monitors feeding the violation store"""

from .base import Monitor
from .audio import AudioMonitor
from .capture import PeriodicCaptureMonitor
from .display import DisplayMonitor
from .face import FaceMonitor, FaceObservation, FaceStatus
from .fullscreen import FullscreenMonitor
from .screen_share import ScreenShareMonitor
from .window import WindowMonitor

__all__ = [
    "Monitor",
    "AudioMonitor",
    "PeriodicCaptureMonitor",
    "DisplayMonitor",
    "FaceMonitor",
    "FaceObservation",
    "FaceStatus",
    "FullscreenMonitor",
    "ScreenShareMonitor",
    "WindowMonitor",
]
