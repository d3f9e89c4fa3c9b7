"""
Tests for the Face Monitor

Presence hysteresis, multi-person detection, the gaze hold timer and
consecutive identity mismatches.
"""

import numpy as np
import pytest

from examguard.events import ViolationKind
from examguard.monitors import FaceMonitor, FaceObservation, FaceStatus

from conftest import FakeFaceDetector, FakePoseEstimator, make_landmarks

REFERENCE = np.array([1.0, 0.0, 0.0, 0.0])
SAME_PERSON = np.array([0.98, 0.1, 0.05, 0.0])
OTHER_PERSON = np.array([0.0, 1.0, 0.0, 0.0])


def _kinds(store):
    return [v.kind for v in store.violations]


@pytest.fixture
def monitor(store, settings, webcam, clock):
    return FaceMonitor(
        store, settings,
        webcam=webcam,
        reference_embedding=REFERENCE,
        detector=FakeFaceDetector(),
        pose_estimator=FakePoseEstimator(),
        clock=clock
    )


class TestPresence:
    """Tests for zero / multiple face counters"""

    @pytest.mark.asyncio
    async def test_no_face_fires_on_third_miss(self, monitor, store, clock):
        """Test face for cycles 1-2, absent 3-5 fires NO_FACE only at cycle 5"""
        present = FaceObservation(num_faces=1, embedding=SAME_PERSON)
        absent = FaceObservation(num_faces=0)

        for obs in (present, present, absent, absent):
            await monitor.process(obs)
            clock.advance(1.5)
        assert _kinds(store) == []
        assert monitor.status is FaceStatus.NONE

        await monitor.process(absent)
        assert _kinds(store) == [ViolationKind.NO_FACE]
        assert monitor.miss_count == 0

    @pytest.mark.asyncio
    async def test_status_none_after_two_misses(self, monitor):
        """Test one miss keeps status, two set none"""
        await monitor.process(FaceObservation(num_faces=0))
        assert monitor.status is FaceStatus.OK

        await monitor.process(FaceObservation(num_faces=0))
        assert monitor.status is FaceStatus.NONE

    @pytest.mark.asyncio
    async def test_face_returns_resets(self, monitor, store):
        """Test an interrupted absence does not fire"""
        for num_faces in (0, 0, 1, 0, 0):
            await monitor.process(FaceObservation(num_faces=num_faces, embedding=SAME_PERSON))

        assert _kinds(store) == []

    @pytest.mark.asyncio
    async def test_multiple_faces(self, monitor, store):
        """Test two consecutive multi-face cycles fire MULTIPLE_FACES"""
        await monitor.process(FaceObservation(num_faces=2))
        assert _kinds(store) == []

        await monitor.process(FaceObservation(num_faces=2))
        assert _kinds(store) == [ViolationKind.MULTIPLE_FACES]
        assert monitor.status is FaceStatus.MULTIPLE
        assert store.violations[0].detail == "2 faces"


class TestGaze:
    """Tests for the gaze-away hold timer"""

    @pytest.mark.asyncio
    async def test_sustained_deviation(self, monitor, store, clock):
        """Test yaw past the limit for 1500 ms fires GAZE_AWAY"""
        away = FaceObservation(num_faces=1, yaw=40.0, pitch=0.0, embedding=SAME_PERSON)

        await monitor.process(away)
        clock.advance(1.0)
        await monitor.process(away)
        assert _kinds(store) == []

        clock.advance(0.5)
        await monitor.process(away)
        assert _kinds(store) == [ViolationKind.GAZE_AWAY]
        assert "yaw=40.0" in store.violations[0].detail

    @pytest.mark.asyncio
    async def test_interrupted_deviation(self, monitor, store, clock):
        """Test looking back before 1500 ms restarts the hold"""
        away = FaceObservation(num_faces=1, yaw=0.0, pitch=-45.0, embedding=SAME_PERSON)
        back = FaceObservation(num_faces=1, yaw=0.0, pitch=0.0, embedding=SAME_PERSON)

        for obs in (away, away, back, away, away):
            await monitor.process(obs)
            clock.advance(0.7)

        assert _kinds(store) == []

    @pytest.mark.asyncio
    async def test_within_limits(self, monitor, store, clock):
        """Test angles at the limits never start the timer"""
        edge = FaceObservation(num_faces=1, yaw=25.0, pitch=30.0, embedding=SAME_PERSON)

        for _ in range(5):
            await monitor.process(edge)
            clock.advance(1.0)

        assert monitor.gaze_since is None
        assert _kinds(store) == []

    @pytest.mark.asyncio
    async def test_status_not_ok_while_looking_away(self, monitor):
        """Test an active gaze-away keeps status from returning to ok"""
        monitor.status = FaceStatus.NONE
        await monitor.process(FaceObservation(num_faces=1, yaw=50.0, pitch=0.0, embedding=SAME_PERSON))

        assert monitor.gaze_active
        assert monitor.status is FaceStatus.NONE


class TestIdentity:
    """Tests for identity verification"""

    @pytest.mark.asyncio
    async def test_three_mismatches(self, monitor, store):
        """Test three consecutive mismatches fire IDENTITY_MISMATCH"""
        other = FaceObservation(num_faces=1, embedding=OTHER_PERSON)

        for _ in range(3):
            await monitor.process(other)

        assert _kinds(store) == [ViolationKind.IDENTITY_MISMATCH]
        assert monitor.status is FaceStatus.MISMATCH
        assert monitor.mismatch_count == 0
        assert store.violations[0].detail == "similarity 0%"

    @pytest.mark.asyncio
    async def test_two_then_pass(self, monitor, store):
        """Test two mismatches followed by a match fire nothing"""
        other = FaceObservation(num_faces=1, embedding=OTHER_PERSON)
        same = FaceObservation(num_faces=1, embedding=SAME_PERSON)

        for obs in (other, other, same, other, other):
            await monitor.process(obs)

        assert _kinds(store) == []
        assert monitor.mismatch_count == 2

    @pytest.mark.asyncio
    async def test_mismatch_not_cooled_down(self, monitor, store):
        """Test repeated mismatches inside the cooldown are all recorded"""
        other = FaceObservation(num_faces=1, embedding=OTHER_PERSON)

        for _ in range(6):
            await monitor.process(other)

        assert _kinds(store) == [ViolationKind.IDENTITY_MISMATCH] * 2

    @pytest.mark.asyncio
    async def test_match_sets_ok(self, monitor):
        """Test a passing sample restores ok"""
        monitor.status = FaceStatus.MISMATCH
        await monitor.process(FaceObservation(num_faces=1, embedding=SAME_PERSON))

        assert monitor.status is FaceStatus.OK
        assert monitor.similarity > 0.72

    @pytest.mark.asyncio
    async def test_no_reference(self, store, settings, clock):
        """Test without a reference identity is never checked"""
        monitor = FaceMonitor(store, settings, reference_embedding=None, clock=clock)
        monitor.status = FaceStatus.NONE

        for _ in range(4):
            await monitor.process(FaceObservation(num_faces=1, embedding=OTHER_PERSON))

        assert store.violations == ()
        assert monitor.status is FaceStatus.OK

    @pytest.mark.asyncio
    async def test_reference_size_differs(self, store, settings, clock, caplog):
        """Test a reference of another length never counts as a mismatch"""
        from examguard.utils import landmark_embedding

        monitor = FaceMonitor(store, settings, reference_embedding=[0.1] * 128, clock=clock)
        observation = FaceObservation(num_faces=1, embedding=landmark_embedding(make_landmarks()))

        for _ in range(9):
            await monitor.process(observation)

        assert store.violations == ()
        assert monitor.status is FaceStatus.OK
        assert monitor.mismatch_count == 0
        assert monitor.similarity is None
        assert caplog.text.count("Identity check skipped") == 1


class TestDetectionCycle:
    """Tests for frame analysis and the polling loop"""

    def test_analyze_single_face(self, monitor, webcam):
        """Test a single face yields angles and an embedding"""
        monitor.detector = FakeFaceDetector(num_faces=1, landmarks=[make_landmarks()])
        monitor.pose_estimator = FakePoseEstimator(yaw=12.0, pitch=-4.0)

        obs = monitor.analyze(webcam.read())

        assert obs.num_faces == 1
        assert obs.yaw == 12.0
        assert obs.pitch == -4.0
        assert obs.embedding.shape == (136,)

    def test_analyze_multiple_faces(self, monitor, webcam):
        """Test multiple faces skip pose and embedding"""
        monitor.detector = FakeFaceDetector(num_faces=3, landmarks=[make_landmarks()] * 3)

        obs = monitor.analyze(webcam.read())

        assert obs.num_faces == 3
        assert obs.embedding is None

    @pytest.mark.asyncio
    async def test_cycle_reads_webcam(self, monitor, store):
        """Test three empty cycles through the detector fire NO_FACE"""
        monitor.detector = FakeFaceDetector(num_faces=0)

        for _ in range(3):
            await monitor._cycle()

        assert monitor.detector.calls == 3
        assert _kinds(store) == [ViolationKind.NO_FACE]

    @pytest.mark.asyncio
    async def test_dead_webcam_skips(self, monitor, store, webcam):
        """Test a stopped webcam never counts as a missing face"""
        monitor.detector = FakeFaceDetector(num_faces=0)
        webcam.stop()

        for _ in range(5):
            await monitor._cycle()

        assert monitor.detector.calls == 0
        assert store.violations == ()

    @pytest.mark.asyncio
    async def test_polling_loop(self, monitor, store, eventually):
        """Test the started monitor polls on its own"""
        monitor.detector = FakeFaceDetector(num_faces=0)
        monitor.start()
        try:
            assert await eventually(lambda: len(store.violations) == 1)
        finally:
            monitor.stop()

        assert _kinds(store) == [ViolationKind.NO_FACE]

    def test_missing_dlib_disables(self, store, settings, monkeypatch):
        """Test the monitor stays inert without dlib"""
        import examguard.monitors.face as face_module

        def no_dlib(*args, **kwargs):
            raise ImportError("No module named 'dlib'")

        monkeypatch.setattr(face_module, "FaceDetector", no_dlib)
        monitor = FaceMonitor(store, settings)
        monitor.start()

        assert monitor.detector is None
        assert monitor._tasks == []
