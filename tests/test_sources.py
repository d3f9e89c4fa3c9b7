"""
Tests for Media Sources

Push-fed frame and sample buffers, ended-callback semantics and the
OpenCV camera adapter.
"""

from unittest.mock import Mock

import numpy as np
import pytest

from examguard.sources import CameraSource, FrameBuffer, SampleBuffer

from conftest import make_frame


class TestMediaSource:
    """Tests for stop / end semantics"""

    def test_end_notifies_once(self):
        """Test end() fires ended callbacks exactly once"""
        source = FrameBuffer()
        callback = Mock()
        source.add_ended_callback(callback)
        source.add_ended_callback(callback)

        source.end()
        source.end()

        callback.assert_called_once()
        assert source.live == False

    def test_stop_does_not_notify(self):
        """Test a deliberate stop is silent and idempotent"""
        source = FrameBuffer()
        callback = Mock()
        source.add_ended_callback(callback)

        source.stop()
        source.stop()
        source.end()

        callback.assert_not_called()

    def test_callback_error_isolated(self):
        """Test one failing listener does not block the next"""
        source = FrameBuffer()
        second = Mock()
        source.add_ended_callback(Mock(side_effect=RuntimeError("boom")))
        source.add_ended_callback(second)

        source.end()

        second.assert_called_once()

    def test_removed_callback(self):
        """Test a removed listener is not called"""
        source = FrameBuffer()
        callback = Mock()
        source.add_ended_callback(callback)
        source.remove_ended_callback(callback)

        source.end()

        callback.assert_not_called()


class TestFrameBuffer:
    """Tests for FrameBuffer"""

    def test_latest_frame_copy(self):
        """Test read returns a copy of the latest frame"""
        source = FrameBuffer()
        assert source.read() is None

        source.push(make_frame(10))
        source.push(make_frame(90))
        frame = source.read()
        frame[:] = 0

        assert source.read()[1, 1, 0] == 90

    def test_stopped_reads_none(self):
        """Test frames are dropped after stop"""
        source = FrameBuffer(surface="monitor")
        source.push(make_frame())
        source.stop()
        source.push(make_frame())

        assert source.read() is None
        assert source.surface == "monitor"


class TestSampleBuffer:
    """Tests for SampleBuffer"""

    def test_read_tail(self):
        """Test read returns the most recent samples"""
        source = SampleBuffer(sample_rate=1000, history_seconds=1.0)
        source.push(np.arange(300, dtype=np.float32))
        source.push(np.arange(300, 600, dtype=np.float32))

        tail = source.read(100)

        assert tail.shape == (100,)
        assert tail[-1] == 599
        assert tail[0] == 500

    def test_history_bounded(self):
        """Test old blocks fall out of the history"""
        source = SampleBuffer(sample_rate=100, history_seconds=1.0)
        for i in range(10):
            source.push(np.full(50, i, dtype=np.float32))

        data = source.read(10_000)

        assert 100 <= data.size <= 150
        assert data[-1] == 9

    def test_capture_collects_pushed_blocks(self):
        """Test a capture sees only blocks pushed while it is open"""
        source = SampleBuffer(sample_rate=1000)
        source.push(np.ones(10, dtype=np.float32))

        token = source.begin_capture()
        source.push(np.full(20, 2.0, dtype=np.float32))
        source.push(np.full(30, 3.0, dtype=np.float32))
        clip = source.end_capture(token)
        source.push(np.ones(10, dtype=np.float32))

        assert clip.size == 50
        assert set(np.unique(clip)) == {2.0, 3.0}

    def test_capture_preroll(self):
        """Test a capture can open with the tail of the history"""
        source = SampleBuffer(sample_rate=1000)
        source.push(np.full(40, 1.0, dtype=np.float32))

        token = source.begin_capture(preroll=25)
        source.push(np.full(10, 2.0, dtype=np.float32))
        clip = source.end_capture(token)

        assert clip.size == 35
        assert (clip[:25] == 1.0).all()
        assert (clip[25:] == 2.0).all()

    def test_unknown_token(self):
        """Test ending an unknown capture returns nothing"""
        source = SampleBuffer()

        assert source.end_capture(42).size == 0

    def test_empty_read(self):
        """Test an unfed buffer reads None"""
        source = SampleBuffer()

        assert source.read(512) is None


class FakeCapture:
    """Stand-in for cv2.VideoCapture"""

    def __init__(self, opened=True, frames=3):
        self.opened = opened
        self.frames = frames
        self.released = False
        self.props = {}

    def isOpened(self):
        return self.opened

    def set(self, prop, value):
        self.props[prop] = value

    def read(self):
        if self.frames <= 0:
            return False, None
        self.frames -= 1
        return True, make_frame()

    def release(self):
        self.released = True


class TestCameraSource:
    """Tests for the OpenCV camera adapter"""

    def test_reads_frames(self, monkeypatch):
        """Test frames come from the capture device"""
        capture = FakeCapture()
        monkeypatch.setattr("examguard.sources.camera.cv2.VideoCapture", lambda index: capture)

        camera = CameraSource(index=0, frame_size=(640, 480))

        assert camera.live
        assert camera.read().shape == (48, 64, 3)
        assert 640 in capture.props.values()

    def test_read_failure_ends_track(self, monkeypatch):
        """Test a failed read ends the source and notifies listeners"""
        capture = FakeCapture(frames=0)
        monkeypatch.setattr("examguard.sources.camera.cv2.VideoCapture", lambda index: capture)
        camera = CameraSource()
        ended = Mock()
        camera.add_ended_callback(ended)

        assert camera.read() is None
        assert camera.live == False
        assert capture.released == True
        ended.assert_called_once()

    def test_unopened_device(self, monkeypatch):
        """Test a missing camera is simply not live"""
        monkeypatch.setattr(
            "examguard.sources.camera.cv2.VideoCapture",
            lambda index: FakeCapture(opened=False)
        )

        camera = CameraSource(index=3)

        assert camera.live == False
        assert camera.read() is None
