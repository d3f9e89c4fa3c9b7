"""Media source contracts and adapters"""

from .base import (
    SURFACE_BROWSER,
    SURFACE_MONITOR,
    SURFACE_WINDOW,
    AudioSource,
    FrameBuffer,
    FrameSource,
    MediaSource,
    SampleBuffer,
)
from .camera import CameraSource
from .microphone import MicrophoneSource

__all__ = [
    "SURFACE_BROWSER",
    "SURFACE_MONITOR",
    "SURFACE_WINDOW",
    "AudioSource",
    "FrameBuffer",
    "FrameSource",
    "MediaSource",
    "SampleBuffer",
    "CameraSource",
    "MicrophoneSource",
]
