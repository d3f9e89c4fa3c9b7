"""
Signal Primitives - Stateless helpers over frames and audio samples

Snapshot encoding, voice-band energy, embedding similarity and head-pose
angle extraction. Nothing in here keeps state or raises on bad media.
"""

import io
import math
import wave
import logging
from typing import Optional, Sequence, Tuple

import cv2
import numpy as np

logger = logging.getLogger(__name__)

# Byte-scaled spectrum range (dB), same defaults as a browser AnalyserNode
MIN_DECIBELS = -100.0
MAX_DECIBELS = -30.0

# Outer eye corners in the 68-point landmark model
LEFT_EYE_OUTER = 36
RIGHT_EYE_OUTER = 45


def encode_snapshot(frame: Optional[np.ndarray], quality: int = 70) -> Optional[bytes]:
    """
    Encode a BGR frame as JPEG.

    Returns:
        JPEG bytes, or None if the frame is empty or encoding fails
    """
    if frame is None or frame.size == 0:
        return None
    try:
        ok, buf = cv2.imencode(".jpg", frame, [int(cv2.IMWRITE_JPEG_QUALITY), int(quality)])
    except cv2.error as e:
        logger.debug(f"Snapshot encode failed: {e}")
        return None
    if not ok:
        return None
    return buf.tobytes()


def snap_source(source, quality: int = 70) -> Optional[bytes]:
    """
    Grab the current frame of a frame source as JPEG.

    Capture failure is never a detection failure: a missing, ended or
    failing source yields None.
    """
    if source is None or not source.live:
        return None
    try:
        frame = source.read()
    except Exception as e:
        logger.debug(f"Snapshot read failed: {e}")
        return None
    return encode_snapshot(frame, quality)


def band_energy(
    samples: np.ndarray,
    sample_rate: int,
    low_hz: float = 300.0,
    high_hz: float = 3400.0,
    fft_size: int = 512
) -> float:
    """
    Average byte-scaled spectral magnitude inside a frequency band.

    The last `fft_size` samples are Blackman-windowed and transformed;
    each bin's dB magnitude is mapped linearly from [-100, -30] dB onto
    [0, 255] and the bins covering [low_hz, high_hz) are averaged.

    Args:
        samples: Mono float samples in [-1, 1]
        sample_rate: Sample rate in Hz
        low_hz: Lower band edge
        high_hz: Upper band edge
        fft_size: Transform length

    Returns:
        Band energy in 0-255 units
    """
    x = np.zeros(fft_size, dtype=np.float64)
    tail = np.asarray(samples, dtype=np.float64).ravel()[-fft_size:]
    if tail.size:
        x[-tail.size:] = tail

    spectrum = np.abs(np.fft.rfft(x * np.blackman(fft_size))) / fft_size
    decibels = 20.0 * np.log10(spectrum + 1e-12)
    scaled = (decibels - MIN_DECIBELS) * (255.0 / (MAX_DECIBELS - MIN_DECIBELS))
    byte_bins = np.clip(np.floor(scaled), 0, 255)[: fft_size // 2]

    bin_size = sample_rate / fft_size
    low = int(math.floor(low_hz / bin_size))
    high = int(math.ceil(high_hz / bin_size))
    if high <= low:
        return 0.0
    return float(byte_bins[low:min(high, byte_bins.size)].sum() / (high - low))


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> Optional[float]:
    """Cosine similarity of two equal-length vectors (None if the shapes differ)"""
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        return None
    return float(np.dot(va, vb) / (np.linalg.norm(va) * np.linalg.norm(vb) + 1e-8))


def landmark_embedding(landmarks: Optional[np.ndarray]) -> Optional[np.ndarray]:
    """
    Build an identity embedding from facial landmarks.

    Points are centred on their mean and divided by the inter-ocular
    distance (68-point model) or the RMS radius (other layouts), so the
    vector is invariant to where the face sits in the frame and how close
    it is to the camera.

    Returns:
        Flat float vector, or None if the landmarks are unusable
    """
    if landmarks is None:
        return None
    points = np.asarray(landmarks, dtype=np.float64).reshape(-1, 2)
    if len(points) < 5:
        return None

    centred = points - points.mean(axis=0)
    if len(points) >= 68:
        scale = float(np.linalg.norm(points[RIGHT_EYE_OUTER] - points[LEFT_EYE_OUTER]))
    else:
        scale = float(np.sqrt((centred ** 2).sum(axis=1).mean()))
    if scale < 1e-6:
        return None
    return (centred / scale).ravel()


def rotation_to_euler(rotation_matrix: np.ndarray) -> Tuple[float, float, float]:
    """
    Convert a rotation matrix to (pitch, yaw, roll) in degrees.

    Pitch is folded into [-90, 90] so a frontal face reads ~0 rather
    than ~180 under the camera's flipped y axis.
    """
    sy = math.sqrt(rotation_matrix[0, 0] ** 2 + rotation_matrix[1, 0] ** 2)

    if sy >= 1e-6:
        pitch = math.atan2(rotation_matrix[2, 1], rotation_matrix[2, 2])
        yaw = math.atan2(-rotation_matrix[2, 0], sy)
        roll = math.atan2(rotation_matrix[1, 0], rotation_matrix[0, 0])
    else:
        pitch = math.atan2(-rotation_matrix[1, 2], rotation_matrix[1, 1])
        yaw = math.atan2(-rotation_matrix[2, 0], sy)
        roll = 0.0

    pitch, yaw, roll = math.degrees(pitch), math.degrees(yaw), math.degrees(roll)
    if pitch > 90:
        pitch -= 180
    elif pitch < -90:
        pitch += 180
    return pitch, yaw, roll


def encode_wav(samples: np.ndarray, sample_rate: int) -> bytes:
    """Encode mono float samples in [-1, 1] as 16-bit PCM WAV"""
    pcm = (np.clip(np.asarray(samples, dtype=np.float64).ravel(), -1.0, 1.0) * 32767).astype("<i2")
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)
        wf.setframerate(int(sample_rate))
        wf.writeframes(pcm.tobytes())
    return buf.getvalue()


def format_time(seconds: int) -> str:
    """Format seconds as MM:SS"""
    seconds = max(0, int(seconds))
    return f"{seconds // 60:02d}:{seconds % 60:02d}"
