"""
examguard Proctoring Engine

Monitors a live exam for integrity violations:
- Tab switches, focus loss, clipboard and blocked shortcuts
- Face absence, extra people, identity mismatch and looking away
- Background noise and confirmed speech
- Fullscreen exits, extra displays and a dropped screen share

Produces one immutable SessionResult per exam with the ordered violation
log, captured evidence and audio clips.
"""

from .config import ProctorSettings, get_settings
from .events import ReportOptions, Severity, Violation, ViolationKind, ViolationStore
from .exceptions import ProctorError, ReshareRejected, SessionNotActive
from .session import FinalizeReason, LiveStatus, ProctorSession, SessionResult, SessionState

__all__ = [
    "ProctorSettings",
    "get_settings",
    "ReportOptions",
    "Severity",
    "Violation",
    "ViolationKind",
    "ViolationStore",
    "ProctorError",
    "ReshareRejected",
    "SessionNotActive",
    "FinalizeReason",
    "LiveStatus",
    "ProctorSession",
    "SessionResult",
    "SessionState",
]
