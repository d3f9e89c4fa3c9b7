"""
Pytest Configuration for examguard Tests

No camera, microphone, dlib model or display is needed: sources are
push-fed buffers, detectors and the host are fakes, and time comes from
a FakeClock that tests advance by hand.
"""
import asyncio
import time

import numpy as np
import pytest

from examguard.config import ProctorSettings
from examguard.events import ViolationStore
from examguard.host import HostEnvironment, ViewportMetrics
from examguard.sources import SURFACE_MONITOR, FrameBuffer, SampleBuffer


class FakeClock:
    """Manually advanced wall clock"""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeHost(HostEnvironment):
    """Host whose answers are set by the test"""

    def __init__(self):
        self.metrics = None
        self.displays = None
        self.fullscreen = True
        self.exit_calls = 0

    def viewport_metrics(self):
        return self.metrics

    def detect_multiple_displays(self):
        return self.displays

    def is_fullscreen(self):
        return self.fullscreen

    def exit_fullscreen(self):
        self.exit_calls += 1
        self.fullscreen = False


class FakeFaceDetector:
    """Returns a fixed detection result"""

    def __init__(self, num_faces=1, landmarks=None):
        self.num_faces = num_faces
        self.landmarks = landmarks or []
        self.calls = 0

    def detect(self, frame):
        self.calls += 1
        return {
            "num_faces": self.num_faces,
            "face_present": self.num_faces > 0,
            "faces": [],
            "landmarks": list(self.landmarks)
        }


class FakePoseEstimator:
    def __init__(self, yaw=0.0, pitch=0.0):
        self.yaw = yaw
        self.pitch = pitch

    def estimate(self, frame, landmarks):
        return {
            "x_rotation": self.pitch,
            "y_rotation": self.yaw,
            "z_rotation": 0.0
        }


class FakeSpeechDetector:
    """contains_speech answers with a preset value (True / False / None)"""

    def __init__(self, answer=True):
        self.answer = answer
        self.calls = 0

    def contains_speech(self, samples, sample_rate):
        self.calls += 1
        return self.answer


def make_frame(value: int = 128, height: int = 48, width: int = 64) -> np.ndarray:
    frame = np.full((height, width, 3), value, dtype=np.uint8)
    frame[::4, ::4] = 255 - value
    return frame


def make_landmarks(offset=(0.0, 0.0), scale: float = 1.0) -> np.ndarray:
    """Synthetic 68-point layout with distinct outer eye corners"""
    rng = np.random.default_rng(7)
    points = rng.uniform(0, 100, size=(68, 2))
    points[36] = (30.0, 40.0)
    points[45] = (70.0, 40.0)
    return points * scale + np.asarray(offset)


async def _eventually(predicate, timeout: float = 2.0, interval: float = 0.005):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        await asyncio.sleep(interval)
    return predicate()


@pytest.fixture(scope='function')
def clock():
    return FakeClock()


@pytest.fixture(scope='function')
def settings():
    """Fast cadences; policy thresholds left at their defaults"""
    return ProctorSettings(
        DURATION_SECONDS=300,
        CLOCK_TICK_SECONDS=0.01,
        FACE_INTERVAL_MS=10,
        AUDIO_SAMPLE_INTERVAL_MS=5,
        POLL_INTERVAL_MS=10,
        PERIODIC_CAPTURE_MS=10,
        NOISE_RECORDING_MS=30,
        RESHARE_GRACE_SECONDS=3
    )


@pytest.fixture(scope='function')
def webcam():
    source = FrameBuffer()
    source.push(make_frame(100))
    return source


@pytest.fixture(scope='function')
def screen():
    source = FrameBuffer(surface=SURFACE_MONITOR)
    source.push(make_frame(200))
    return source


@pytest.fixture(scope='function')
def microphone():
    return SampleBuffer(sample_rate=16000)


@pytest.fixture(scope='function')
def store(settings, clock, webcam, screen):
    return ViolationStore("EXM_TEST01", settings, webcam=webcam, screen=screen, clock=clock)


@pytest.fixture(scope='function')
def host():
    return FakeHost()


@pytest.fixture(scope='function')
def eventually():
    """Poll a predicate on the running loop until it holds or times out"""
    return _eventually


@pytest.fixture(scope='function')
def viewport():
    def build(gap_w: int, gap_h: int) -> ViewportMetrics:
        return ViewportMetrics(1280 + gap_w, 800 + gap_h, 1280, 800)
    return build
