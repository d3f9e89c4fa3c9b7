"""Utility modules"""

from .signal import (
    band_energy,
    cosine_similarity,
    encode_snapshot,
    encode_wav,
    format_time,
    landmark_embedding,
    rotation_to_euler,
    snap_source,
)
from .logging import log_proctor_event

__all__ = [
    "band_energy",
    "cosine_similarity",
    "encode_snapshot",
    "encode_wav",
    "format_time",
    "landmark_embedding",
    "rotation_to_euler",
    "snap_source",
    "log_proctor_event",
]
