"""Detector modules for proctoring"""

from .face_detector import FaceDetector
from .head_pose import HeadPoseEstimator
from .speech_detector import SpeechDetector

__all__ = [
    "FaceDetector",
    "HeadPoseEstimator",
    "SpeechDetector"
]
