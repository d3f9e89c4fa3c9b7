"""Evidence records and the violation event store"""

from .models import (
    KIND_CONFIG,
    AudioClip,
    CaptureLog,
    CaptureSource,
    CaptureTrigger,
    ReportOptions,
    Severity,
    Violation,
    ViolationKind,
)
from .store import ViolationStore

__all__ = [
    "KIND_CONFIG",
    "AudioClip",
    "CaptureLog",
    "CaptureSource",
    "CaptureTrigger",
    "ReportOptions",
    "Severity",
    "Violation",
    "ViolationKind",
    "ViolationStore",
]
