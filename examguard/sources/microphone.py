"""
Microphone Source - Live input through sounddevice

Note: sounddevice needs PortAudio. It is imported on construction so the
rest of the engine works on machines without an audio stack.
"""

import logging

import numpy as np

from .base import SampleBuffer

logger = logging.getLogger(__name__)


class MicrophoneSource(SampleBuffer):
    """Sample source fed by a sounddevice input stream callback."""

    DEFAULT_SAMPLE_RATE = 16000
    DEFAULT_BLOCK_SIZE = 512

    def __init__(
        self,
        device=None,
        sample_rate: int = DEFAULT_SAMPLE_RATE,
        block_size: int = DEFAULT_BLOCK_SIZE
    ):
        """
        Open and start the default (or given) input device.

        Args:
            device: sounddevice device id or name
            sample_rate: Sample rate in Hz
            block_size: Frames per callback
        """
        super().__init__(sample_rate=sample_rate)
        try:
            import sounddevice as sd
        except ImportError:
            logger.error("sounddevice not installed. Run: pip install sounddevice")
            raise

        self._stream = sd.InputStream(
            device=device,
            channels=1,
            samplerate=sample_rate,
            blocksize=block_size,
            dtype="float32",
            callback=self._on_block
        )
        self._stream.start()
        logger.info(f"Microphone opened at {sample_rate} Hz")

    def _on_block(self, indata, frames, time_info, status):
        if status:
            logger.debug(f"Microphone status: {status}")
        self.push(np.array(indata[:, 0], dtype=np.float32))

    def _release(self):
        try:
            self._stream.stop()
            self._stream.close()
        except Exception as e:
            logger.debug(f"Microphone close error: {e}")
        super()._release()
        logger.info("Microphone released")
