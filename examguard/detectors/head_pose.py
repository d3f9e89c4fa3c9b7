"""
Head Pose Estimator - Estimates head orientation using facial landmarks
"""

import cv2
import numpy as np
import logging
from typing import Dict, Any, Tuple

from ..utils.signal import rotation_to_euler

logger = logging.getLogger(__name__)


class HeadPoseEstimator:
    """
    Estimates head pose (pitch, yaw, roll) using 68-point facial landmarks
    and PnP (Perspective-n-Point) algorithm.

    Uses 6 key facial points:
    - Nose tip (30)
    - Chin (8)
    - Left eye corner (36)
    - Right eye corner (45)
    - Left mouth corner (48)
    - Right mouth corner (54)
    """

    # 3D model points (generic face model)
    MODEL_POINTS = np.array([
        (0.0, 0.0, 0.0),            # Nose tip
        (0.0, -330.0, -65.0),       # Chin
        (-225.0, 170.0, -135.0),    # Left eye left corner
        (225.0, 170.0, -135.0),     # Right eye right corner
        (-150.0, -150.0, -125.0),   # Left mouth corner
        (150.0, -150.0, -125.0)     # Right mouth corner
    ], dtype=np.float64)

    LANDMARK_INDICES = [30, 8, 36, 45, 48, 54]

    def __init__(self, frame_size: Tuple[int, int] = (480, 640)):
        """
        Initialize head pose estimator.

        Args:
            frame_size: (height, width) of expected frames
        """
        self.frame_size = frame_size
        self._init_camera_matrix(frame_size)

    def _init_camera_matrix(self, frame_size: Tuple[int, int]):
        """Initialize camera matrix based on frame size"""
        height, width = frame_size
        focal_length = width
        center = (width / 2, height / 2)

        self.camera_matrix = np.array([
            [focal_length, 0, center[0]],
            [0, focal_length, center[1]],
            [0, 0, 1]
        ], dtype=np.float64)

        self.dist_coeffs = np.zeros((4, 1))

    def estimate(self, frame: np.ndarray, landmarks: np.ndarray) -> Dict[str, Any]:
        """
        Estimate head pose from facial landmarks.

        Args:
            frame: BGR image
            landmarks: 68-point facial landmarks as numpy array of shape (68, 2)

        Returns:
            dict with:
                - x_rotation: pitch angle (up/down)
                - y_rotation: yaw angle (left/right)
                - z_rotation: roll angle (tilt)
        """
        if landmarks is None or len(landmarks) < 68:
            return self._default_result()

        h, w = frame.shape[:2]
        if (h, w) != self.frame_size:
            self._init_camera_matrix((h, w))
            self.frame_size = (h, w)

        try:
            image_points = np.array(
                [landmarks[i] for i in self.LANDMARK_INDICES],
                dtype=np.float64
            )

            success, rotation_vector, _ = cv2.solvePnP(
                self.MODEL_POINTS,
                image_points,
                self.camera_matrix,
                self.dist_coeffs,
                flags=cv2.SOLVEPNP_ITERATIVE
            )
            if not success:
                return self._default_result()

            rotation_matrix, _ = cv2.Rodrigues(rotation_vector)
            pitch, yaw, roll = rotation_to_euler(rotation_matrix)

            return {
                "x_rotation": float(pitch),
                "y_rotation": float(yaw),
                "z_rotation": float(roll)
            }

        except cv2.error as e:
            logger.warning(f"Head pose estimation error: {e}")
            return self._default_result()

    def _default_result(self) -> Dict[str, Any]:
        """Return default result when estimation fails"""
        return {
            "x_rotation": None,
            "y_rotation": None,
            "z_rotation": None
        }
