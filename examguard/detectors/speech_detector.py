"""
Speech Detector - Confirms human voice in a recorded clip with WebRTC VAD

Used as the independent speech-activity signal behind AUDIO_DETECTED: a
NOISE_DETECTED clip is only promoted when the VAD hears speech in it.
"""

import logging
from typing import Optional

import numpy as np

logger = logging.getLogger(__name__)


class SpeechDetector:
    """
    Frame-level voice activity detection over a whole clip.

    Note: webrtcvad only accepts 16-bit mono PCM at 8/16/32/48 kHz in
    10/20/30 ms frames. Anything it cannot judge returns None so the
    caller can decide how to fail.
    """

    SUPPORTED_RATES = (8000, 16000, 32000, 48000)
    FRAME_MS = 30

    def __init__(self, aggressiveness: int = 2, min_speech_ms: int = 300):
        """
        Initialize speech detector.

        Args:
            aggressiveness: webrtcvad mode, 0 (lenient) to 3 (strict)
            min_speech_ms: Voiced audio needed to confirm speech
        """
        try:
            import webrtcvad
        except ImportError:
            logger.error("webrtcvad not installed. Run: pip install webrtcvad-wheels")
            raise

        self.vad = webrtcvad.Vad(aggressiveness)
        self.min_speech_ms = min_speech_ms

    def contains_speech(self, samples: np.ndarray, sample_rate: int) -> Optional[bool]:
        """
        Check a clip for voice activity.

        Args:
            samples: Mono float samples in [-1, 1]
            sample_rate: Sample rate in Hz

        Returns:
            True/False, or None if the clip cannot be judged
        """
        if sample_rate not in self.SUPPORTED_RATES:
            logger.debug(f"VAD cannot judge {sample_rate} Hz audio")
            return None

        pcm = (np.clip(np.asarray(samples, dtype=np.float64).ravel(), -1.0, 1.0) * 32767).astype("<i2")
        frame_len = sample_rate * self.FRAME_MS // 1000
        n_frames = len(pcm) // frame_len
        if n_frames == 0:
            return None

        needed = max(1, self.min_speech_ms // self.FRAME_MS)
        voiced = 0
        for i in range(n_frames):
            frame = pcm[i * frame_len:(i + 1) * frame_len].tobytes()
            if self.vad.is_speech(frame, sample_rate):
                voiced += 1
                if voiced >= needed:
                    return True
        return False
