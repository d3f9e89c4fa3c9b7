"""
Evidence Records - Violations, captures and audio clips
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, NamedTuple, Optional


class ViolationKind(str, Enum):
    """Closed set of detectable integrity events"""
    TAB_SWITCH = "TAB_SWITCH"
    WINDOW_BLUR = "WINDOW_BLUR"
    NO_FACE = "NO_FACE"
    MULTIPLE_FACES = "MULTIPLE_FACES"
    IDENTITY_MISMATCH = "IDENTITY_MISMATCH"
    FULLSCREEN_EXIT = "FULLSCREEN_EXIT"
    COPY_ATTEMPT = "COPY_ATTEMPT"
    DEVTOOLS_OPEN = "DEVTOOLS_OPEN"
    CONTEXT_MENU = "CONTEXT_MENU"
    SCREEN_SHARE_STOPPED = "SCREEN_SHARE_STOPPED"
    NOISE_DETECTED = "NOISE_DETECTED"
    AUDIO_DETECTED = "AUDIO_DETECTED"
    MULTIPLE_MONITORS = "MULTIPLE_MONITORS"
    KEYBOARD_SHORTCUT = "KEYBOARD_SHORTCUT"
    GAZE_AWAY = "GAZE_AWAY"


class Severity(str, Enum):
    WARN = "warn"
    ERROR = "error"


class CaptureSource(str, Enum):
    WEBCAM = "webcam"
    SCREEN = "screen"


class CaptureTrigger(str, Enum):
    PERIODIC = "periodic"
    VIOLATION = "violation"
    FULLSCREEN_EXIT = "fullscreen_exit"


class KindConfig(NamedTuple):
    label: str
    severity: Severity
    notice: str  # student-facing message for the notification collaborator


KIND_CONFIG: Dict[ViolationKind, KindConfig] = {
    ViolationKind.TAB_SWITCH: KindConfig(
        "Left the Exam Window", Severity.ERROR, "Please stay on the exam window."),
    ViolationKind.WINDOW_BLUR: KindConfig(
        "Window Lost Focus", Severity.WARN, "Please stay focused on the exam."),
    ViolationKind.NO_FACE: KindConfig(
        "Face Not Visible", Severity.ERROR, "Please keep your face visible in the camera."),
    ViolationKind.MULTIPLE_FACES: KindConfig(
        "Another Person Detected", Severity.ERROR, "Only you may be present during the exam."),
    ViolationKind.IDENTITY_MISMATCH: KindConfig(
        "Identity Could Not Be Verified", Severity.ERROR, "Your identity could not be verified."),
    ViolationKind.FULLSCREEN_EXIT: KindConfig(
        "Left Fullscreen Mode", Severity.ERROR, "Please return to fullscreen mode."),
    ViolationKind.COPY_ATTEMPT: KindConfig(
        "Copy/Paste Not Allowed", Severity.WARN, "Copy and paste is not allowed."),
    ViolationKind.DEVTOOLS_OPEN: KindConfig(
        "Developer Tools Detected", Severity.ERROR, "Developer tools are not allowed."),
    ViolationKind.CONTEXT_MENU: KindConfig(
        "Right-Click Not Allowed", Severity.WARN, "Right-clicking is not allowed."),
    ViolationKind.SCREEN_SHARE_STOPPED: KindConfig(
        "Screen Sharing Ended", Severity.ERROR, "Screen sharing has ended. Please resume."),
    ViolationKind.NOISE_DETECTED: KindConfig(
        "Background Noise Detected", Severity.WARN, "Background noise detected."),
    ViolationKind.AUDIO_DETECTED: KindConfig(
        "Voice/Speech Detected", Severity.ERROR, "Voice activity detected."),
    ViolationKind.MULTIPLE_MONITORS: KindConfig(
        "Multiple Displays Detected", Severity.ERROR, "Please disconnect extra monitors."),
    ViolationKind.KEYBOARD_SHORTCUT: KindConfig(
        "Blocked Shortcut Used", Severity.WARN, "That keyboard shortcut is blocked."),
    ViolationKind.GAZE_AWAY: KindConfig(
        "Looking Away from Screen", Severity.ERROR, "Please keep your eyes on the screen."),
}


def new_id() -> str:
    return uuid.uuid4().hex[:8]


@dataclass(frozen=True)
class ReportOptions:
    """Options for a single report_violation call"""
    capture_screen: bool = False
    away_ms: Optional[int] = None
    detail: Optional[str] = None
    bypass_cooldown: bool = False
    audio_ref: Optional[str] = None


@dataclass(frozen=True)
class Violation:
    """A recorded integrity violation"""
    id: str
    kind: ViolationKind
    label: str
    severity: Severity
    timestamp: datetime
    webcam_shot: Optional[bytes] = None
    screen_shot: Optional[bytes] = None
    audio_ref: Optional[str] = None
    away_ms: Optional[int] = None
    detail: Optional[str] = None

    @property
    def notice(self) -> str:
        return KIND_CONFIG[self.kind].notice


@dataclass(frozen=True)
class CaptureLog:
    """A webcam or screen image kept as evidence"""
    id: str
    timestamp: datetime
    source: CaptureSource
    image: bytes
    trigger: CaptureTrigger


@dataclass(frozen=True)
class AudioClip:
    """A recorded audio evidence clip (WAV)"""
    id: str
    timestamp: datetime
    payload: bytes
    violation_id: Optional[str] = None
