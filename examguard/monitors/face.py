"""
Face Monitor - Presence, identity and gaze checks on the webcam

Each cycle samples one webcam frame, runs the dlib detector and head pose
estimator on it, and feeds the result through hysteresis counters so a
single bad frame never produces a violation.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Sequence

import numpy as np

from ..config import ProctorSettings
from ..detectors import FaceDetector, HeadPoseEstimator
from ..events import ReportOptions, ViolationKind, ViolationStore
from ..utils.signal import cosine_similarity, landmark_embedding
from .base import Monitor

logger = logging.getLogger(__name__)


class FaceStatus(str, Enum):
    OK = "ok"
    NONE = "none"
    MULTIPLE = "multiple"
    MISMATCH = "mismatch"


@dataclass(frozen=True)
class FaceObservation:
    """What one detection cycle saw"""
    num_faces: int
    yaw: Optional[float] = None
    pitch: Optional[float] = None
    embedding: Optional[np.ndarray] = None


class FaceMonitor(Monitor):
    """
    Webcam face / identity / gaze monitor.

    Counters:
    - miss: consecutive zero-face cycles
    - multi: consecutive multi-face cycles
    - mismatch: consecutive single-face cycles below the similarity threshold

    Gaze uses a timer instead of a counter: the head must stay turned past
    the yaw/pitch limits for GAZE_HOLD_MS without interruption.
    """

    name = "face"

    def __init__(
        self,
        store: ViolationStore,
        settings: ProctorSettings,
        webcam=None,
        reference_embedding: Optional[Sequence[float]] = None,
        detector: Optional[FaceDetector] = None,
        pose_estimator: Optional[HeadPoseEstimator] = None,
        clock: Callable[[], float] = time.time
    ):
        super().__init__(store, settings, clock)
        self.webcam = webcam
        self.reference = (
            np.asarray(reference_embedding, dtype=np.float64).ravel()
            if reference_embedding is not None else None
        )
        self.detector = detector
        self.pose_estimator = pose_estimator

        self.status = FaceStatus.OK
        self.similarity: Optional[float] = None
        self.miss_count = 0
        self.multi_count = 0
        self.mismatch_count = 0
        self.gaze_since: Optional[float] = None
        self._shape_warned = False

    @property
    def gaze_active(self) -> bool:
        return self.gaze_since is not None

    def _on_start(self):
        if self.detector is None:
            try:
                self.detector = FaceDetector()
            except ImportError:
                logger.warning("Face monitoring disabled for this session")
                return
        if self.pose_estimator is None:
            self.pose_estimator = HeadPoseEstimator()
        self._spawn(self._every(self.settings.FACE_INTERVAL_MS / 1000, self._cycle))

    async def _cycle(self):
        if self.webcam is None or not self.webcam.live:
            return
        frame = await asyncio.to_thread(self.webcam.read)
        if frame is None:
            return
        observation = await asyncio.to_thread(self.analyze, frame)
        await self.process(observation)

    def analyze(self, frame: np.ndarray) -> FaceObservation:
        """
        Run detection on one frame.

        Args:
            frame: BGR webcam frame

        Returns:
            FaceObservation; angles and embedding only for a single face
        """
        result = self.detector.detect(frame)
        num_faces = result["num_faces"]

        if num_faces != 1 or not result["landmarks"]:
            return FaceObservation(num_faces=num_faces)

        landmarks = result["landmarks"][0]
        yaw = pitch = None
        if self.pose_estimator is not None:
            pose = self.pose_estimator.estimate(frame, landmarks)
            yaw = pose["y_rotation"]
            pitch = pose["x_rotation"]

        return FaceObservation(
            num_faces=1,
            yaw=yaw,
            pitch=pitch,
            embedding=landmark_embedding(landmarks)
        )

    async def process(self, observation: FaceObservation):
        """Advance the state machine by one cycle"""
        if observation.num_faces == 0:
            self.miss_count += 1
            self.multi_count = 0
            self.mismatch_count = 0
            self.gaze_since = None
            if self.miss_count >= 2:
                self.status = FaceStatus.NONE
            if self.miss_count >= self.settings.NO_FACE_FRAMES:
                self.miss_count = 0
                await self.store.report_violation(ViolationKind.NO_FACE)
            return

        if observation.num_faces > 1:
            self.multi_count += 1
            self.miss_count = 0
            self.mismatch_count = 0
            self.gaze_since = None
            if self.multi_count >= self.settings.MULTI_FACE_FRAMES:
                self.status = FaceStatus.MULTIPLE
                await self.store.report_violation(
                    ViolationKind.MULTIPLE_FACES,
                    ReportOptions(detail=f"{observation.num_faces} faces")
                )
            return

        self.miss_count = 0
        self.multi_count = 0
        await self._check_gaze(observation)
        await self._check_identity(observation)

    async def _check_gaze(self, observation: FaceObservation):
        yaw, pitch = observation.yaw, observation.pitch
        if yaw is None or pitch is None:
            self.gaze_since = None
            return

        deviated = (
            abs(yaw) > self.settings.YAW_LIMIT_DEG
            or abs(pitch) > self.settings.PITCH_LIMIT_DEG
        )
        if not deviated:
            self.gaze_since = None
            return

        now = self.clock()
        if self.gaze_since is None:
            self.gaze_since = now
            return

        if (now - self.gaze_since) * 1000 >= self.settings.GAZE_HOLD_MS:
            self.gaze_since = now
            await self.store.report_violation(
                ViolationKind.GAZE_AWAY,
                ReportOptions(detail=f"yaw={yaw:.1f} pitch={pitch:.1f}")
            )

    async def _check_identity(self, observation: FaceObservation):
        similarity = None
        if self.reference is not None and observation.embedding is not None:
            similarity = cosine_similarity(observation.embedding, self.reference)
            if similarity is None and not self._shape_warned:
                self._shape_warned = True
                logger.warning(
                    f"Identity check skipped for session {self.session_id}: "
                    f"embedding size {np.size(observation.embedding)} != reference size {self.reference.size}"
                )

        self.similarity = similarity
        if similarity is None:
            self.mismatch_count = 0
            if not self.gaze_active:
                self.status = FaceStatus.OK
            return

        if similarity < self.settings.SIMILARITY_THRESHOLD:
            self.mismatch_count += 1
            if self.mismatch_count >= self.settings.MISMATCH_FRAMES:
                self.mismatch_count = 0
                self.status = FaceStatus.MISMATCH
                await self.store.report_violation(
                    ViolationKind.IDENTITY_MISMATCH,
                    ReportOptions(
                        detail=f"similarity {similarity * 100:.0f}%",
                        bypass_cooldown=True
                    )
                )
            return

        self.mismatch_count = 0
        if not self.gaze_active:
            self.status = FaceStatus.OK
