"""
Face Detector - Detects faces using dlib's HOG detector
"""

import cv2
import numpy as np
import logging
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)


class FaceDetector:
    """
    Detects faces in video frames using dlib's HOG-based face detector.

    Provides:
    - Face count (absence / multi-person detection)
    - Face bounding boxes
    - Facial landmarks (68-point), when the predictor model is available
    """

    def __init__(self, predictor_path: Optional[str] = None, upsample: int = 0):
        """
        Initialize face detector.

        Args:
            predictor_path: Path to dlib shape predictor model.
                           If None, located through model_loader.
            upsample: Number of image upsamplings before detection
        """
        try:
            import dlib
            self.dlib = dlib
            self.detector = dlib.get_frontal_face_detector()
        except ImportError:
            logger.error("dlib not installed. Run: pip install dlib")
            raise

        self.upsample = upsample
        self.predictor_path = predictor_path
        self.predictor = None
        self._predictor_loaded = False

    def _ensure_predictor(self):
        """Lazy load predictor if not already loaded"""
        if self.predictor is None and not self._predictor_loaded:
            try:
                from ..models import get_dlib_predictor
                self.predictor = get_dlib_predictor(self.predictor_path)
            except Exception as e:
                logger.warning(f"Could not load dlib predictor: {e}")
            self._predictor_loaded = True  # Don't retry

    def detect(self, frame: np.ndarray) -> Dict[str, Any]:
        """
        Detect faces in a frame.

        Args:
            frame: BGR image from OpenCV

        Returns:
            dict with:
                - num_faces: int (0, 1, 2+)
                - face_present: bool
                - faces: List of dlib rectangles
                - landmarks: List of (68, 2) landmark arrays (if predictor loaded)
        """
        if frame is None or frame.size == 0:
            return {
                "num_faces": 0,
                "face_present": False,
                "faces": [],
                "landmarks": []
            }

        gray = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)

        faces = self.detector(gray, self.upsample)
        num_faces = len(faces)

        landmarks = []
        self._ensure_predictor()
        if self.predictor is not None and num_faces > 0:
            for face in faces:
                try:
                    marks = self.predictor(gray, face)
                    points = np.array([
                        (marks.part(i).x, marks.part(i).y)
                        for i in range(68)
                    ], dtype=np.float64)
                    landmarks.append(points)
                except Exception as e:
                    logger.warning(f"Error getting landmarks: {e}")

        return {
            "num_faces": num_faces,
            "face_present": num_faces > 0,
            "faces": faces,
            "landmarks": landmarks
        }
