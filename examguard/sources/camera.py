"""
Camera Source - Webcam frames through OpenCV VideoCapture
"""

import logging
import threading
from typing import Optional, Tuple

import cv2
import numpy as np

from .base import FrameSource

logger = logging.getLogger(__name__)


class CameraSource(FrameSource):
    """
    Frame source backed by a local camera device.

    Reads are serialized so a snapshot and a detection cycle never touch
    the capture handle at the same time.
    """

    def __init__(self, index: int = 0, frame_size: Optional[Tuple[int, int]] = (1280, 720)):
        """
        Open a camera.

        Args:
            index: OpenCV device index
            frame_size: Requested (width, height), or None for the driver default
        """
        super().__init__()
        self.index = index
        self._read_lock = threading.Lock()
        self._cap = cv2.VideoCapture(index)

        if not self._cap.isOpened():
            logger.warning(f"Camera {index} could not be opened")
            self._live = False
            return

        if frame_size:
            self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, frame_size[0])
            self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, frame_size[1])
        logger.info(f"Camera {index} opened")

    def read(self) -> Optional[np.ndarray]:
        if not self._live:
            return None
        with self._read_lock:
            ok, frame = self._cap.read()
        if not ok:
            logger.warning(f"Camera {self.index} read failure")
            self.end()
            return None
        return frame

    def _release(self):
        with self._read_lock:
            self._cap.release()
        logger.info(f"Camera {self.index} released")
