"""Errors raised to engine callers"""


class ProctorError(Exception):
    """Base class for proctoring engine errors"""


class SessionNotActive(ProctorError):
    """Raised when an operation needs an active session"""


class ReshareRejected(ProctorError):
    """Raised when a replacement screen share cannot be accepted"""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason
