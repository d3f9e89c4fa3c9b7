"""
Proctoring Logger - Logs proctoring lifecycle events and violations
"""

import logging
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)


def log_proctor_event(
    session_id: str,
    event_type: str,
    details: Optional[Dict[str, Any]] = None,
    level: str = "info"
):
    """
    Log a proctoring event.

    Args:
        session_id: Proctoring session ID
        event_type: Type of event (session_start, violation, monitor_error, ...)
        details: Optional event details
        level: Log level (debug, info, warning, error)
    """
    message = f"[PROCTOR] session={session_id} event={event_type}"

    if details:
        detail_str = " ".join(f"{k}={v}" for k, v in details.items())
        message += f" {detail_str}"

    if level == "debug":
        logger.debug(message)
    elif level == "warning":
        logger.warning(message)
    elif level == "error":
        logger.error(message)
    else:
        logger.info(message)


def log_session_start(session_id: str, duration_seconds: int, monitoring_enabled: bool):
    """Log session start event"""
    log_proctor_event(
        session_id=session_id,
        event_type="session_start",
        details={
            "duration_seconds": duration_seconds,
            "monitoring": "on" if monitoring_enabled else "off"
        }
    )


def log_session_end(session_id: str, reason: str, violations: int, elapsed_seconds: int):
    """Log session end event"""
    log_proctor_event(
        session_id=session_id,
        event_type="session_end",
        details={
            "reason": reason,
            "violations": violations,
            "elapsed_seconds": elapsed_seconds
        }
    )


def log_violation_recorded(session_id: str, kind: str, detail: Optional[str] = None):
    """Log when a violation is appended to the store"""
    details = {"kind": kind}
    if detail:
        details["detail"] = repr(detail)
    log_proctor_event(
        session_id=session_id,
        event_type="violation",
        details=details,
        level="warning"
    )


def log_monitor_error(session_id: str, monitor: str, error: Exception):
    """Log a monitor cycle failure (the cycle is skipped)"""
    log_proctor_event(
        session_id=session_id,
        event_type="monitor_error",
        details={
            "monitor": monitor,
            "error": repr(error)
        },
        level="warning"
    )


def log_critical_event(session_id: str, event: str, details: Optional[Dict[str, Any]] = None):
    """Log a critical proctoring event"""
    log_proctor_event(
        session_id=session_id,
        event_type=f"critical_{event}",
        details=details,
        level="warning"
    )
