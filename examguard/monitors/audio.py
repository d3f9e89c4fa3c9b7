"""
Audio Monitor - Room-calibrated voice-band energy detection

Calibrates a baseline from the room's own ambient level, flags sustained
energy above it as NOISE_DETECTED, records a clip as evidence and promotes
it to AUDIO_DETECTED when speech is confirmed in the clip.
"""

import asyncio
import logging
import time
from typing import Callable, List, Optional

import numpy as np

from ..config import ProctorSettings
from ..detectors import SpeechDetector
from ..events import ReportOptions, ViolationKind, ViolationStore
from ..utils.logging import log_proctor_event
from ..utils.signal import band_energy, encode_wav
from .base import Monitor

logger = logging.getLogger(__name__)


class AudioMonitor(Monitor):
    """
    Microphone monitor.

    Phases:
    - calibrating: collect CALIBRATION_SAMPLES levels, then set the
      baseline to their BASELINE_PERCENTILE
    - monitoring: count frames louder than baseline + NOISE_MARGIN
    """

    name = "audio"

    def __init__(
        self,
        store: ViolationStore,
        settings: ProctorSettings,
        microphone=None,
        speech_detector: Optional[SpeechDetector] = None,
        clock: Callable[[], float] = time.time
    ):
        super().__init__(store, settings, clock)
        self.microphone = microphone
        self.speech_detector = speech_detector

        self.level = 0.0
        self.baseline: Optional[float] = None
        self.voice_frames = 0
        self.last_noise_at: Optional[float] = None

        self._calibration: List[float] = []
        self._recording: Optional[asyncio.Task] = None

    @property
    def calibrating(self) -> bool:
        return self.baseline is None

    @property
    def recording(self) -> bool:
        return self._recording is not None and not self._recording.done()

    def _on_start(self):
        if self.microphone is None:
            logger.info("No microphone source, audio monitoring off")
            return
        if self.speech_detector is None:
            try:
                self.speech_detector = SpeechDetector(self.settings.VAD_AGGRESSIVENESS)
            except ImportError:
                logger.warning("Speech confirmation unavailable; every noise clip counts as voice")
        self._spawn(self._every(self.settings.AUDIO_SAMPLE_INTERVAL_MS / 1000, self._sample))

    async def _sample(self):
        if not self.microphone.live:
            return
        samples = self.microphone.read(self.settings.FFT_SIZE)
        if samples is None or len(samples) == 0:
            return
        level = band_energy(
            samples,
            self.microphone.sample_rate,
            low_hz=self.settings.VOICE_BAND_LOW_HZ,
            high_hz=self.settings.VOICE_BAND_HIGH_HZ,
            fft_size=self.settings.FFT_SIZE
        )
        await self.process_level(level)

    async def process_level(self, level: float):
        """Feed one band-energy sample through calibration / detection"""
        self.level = float(level)

        if self.baseline is None:
            self._calibration.append(self.level)
            if len(self._calibration) >= self.settings.CALIBRATION_SAMPLES:
                self.baseline = float(np.percentile(self._calibration, self.settings.BASELINE_PERCENTILE))
                self._calibration.clear()
                log_proctor_event(self.session_id, "audio_calibrated", {"baseline": f"{self.baseline:.1f}"})
            return

        if self.level > self.baseline + self.settings.NOISE_MARGIN:
            self.voice_frames += 1
        else:
            self.voice_frames = max(0, self.voice_frames - 1)

        if self.voice_frames < self.settings.VOICE_FRAMES_TRIGGER or self.recording:
            return

        now = self.clock()
        if self.last_noise_at is not None and (now - self.last_noise_at) * 1000 < self.settings.NOISE_COOLDOWN_MS:
            return

        self.last_noise_at = now
        self.voice_frames = 0
        violation_id = await self.store.report_violation(
            ViolationKind.NOISE_DETECTED,
            ReportOptions(detail=f"level {self.level:.0f} over baseline {self.baseline:.0f}")
        )
        if violation_id is not None and self.microphone is not None and self._running:
            self._recording = self._spawn(self._record(violation_id))

    async def _record(self, violation_id: str):
        """Record the evidence clip and confirm speech in it"""
        microphone = self.microphone
        preroll = int(microphone.sample_rate * self.settings.NOISE_PREROLL_MS / 1000)
        token = microphone.begin_capture(preroll)
        try:
            await asyncio.sleep(self.settings.NOISE_RECORDING_MS / 1000)
        finally:
            samples = microphone.end_capture(token)

        if samples.size == 0:
            logger.debug("Noise recording captured no samples")
            return

        payload = encode_wav(samples, microphone.sample_rate)
        clip = self.store.attach_audio_clip(payload, violation_id)
        if clip is None:
            return

        voiced = await asyncio.to_thread(self._confirm_speech, samples, microphone.sample_rate)
        if voiced:
            await self.store.report_violation(
                ViolationKind.AUDIO_DETECTED,
                ReportOptions(detail="speech confirmed in noise clip", audio_ref=clip.id)
            )

    def _confirm_speech(self, samples: np.ndarray, sample_rate: int) -> bool:
        # Unavailable or undecidable VAD counts as voice
        if self.speech_detector is None:
            return True
        result = self.speech_detector.contains_speech(samples, sample_rate)
        return True if result is None else result
