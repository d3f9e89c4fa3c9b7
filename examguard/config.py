"""
Proctoring Engine Configuration Settings

All policy thresholds, cadences and cooldowns for the monitoring engine.
Values can be overridden through environment variables prefixed with
PROCTOR_ (e.g. PROCTOR_DURATION_SECONDS=600) or a .env file.
"""
from functools import lru_cache

from pydantic_settings import BaseSettings


class ProctorSettings(BaseSettings):
    """Configuration for a proctored exam session."""

    # Session
    DURATION_SECONDS: int = 300  # 5 minutes
    MONITORING_ENABLED: bool = True  # False = clock and finalizer only
    CLOCK_TICK_SECONDS: float = 1.0

    # Cooldowns (same-kind spacing)
    COOLDOWN_MS: int = 10_000
    NOISE_COOLDOWN_MS: int = 12_000

    # Face / identity / gaze
    FACE_INTERVAL_MS: int = 1500
    NO_FACE_FRAMES: int = 3
    MULTI_FACE_FRAMES: int = 2
    MISMATCH_FRAMES: int = 3
    SIMILARITY_THRESHOLD: float = 0.72
    YAW_LIMIT_DEG: float = 25.0
    PITCH_LIMIT_DEG: float = 30.0
    GAZE_HOLD_MS: int = 1500

    # Audio / voice
    AUDIO_SAMPLE_INTERVAL_MS: int = 33  # ~30 Hz
    FFT_SIZE: int = 512
    VOICE_BAND_LOW_HZ: float = 300.0
    VOICE_BAND_HIGH_HZ: float = 3400.0
    CALIBRATION_SAMPLES: int = 120
    BASELINE_PERCENTILE: float = 80.0
    NOISE_MARGIN: float = 12.0
    VOICE_FRAMES_TRIGGER: int = 5
    NOISE_RECORDING_MS: int = 12_000
    NOISE_PREROLL_MS: int = 1000  # audio kept from before the flag
    VAD_AGGRESSIVENESS: int = 2  # webrtcvad mode 0-3

    # Window / display polling
    POLL_INTERVAL_MS: int = 3000
    DEVTOOLS_GAP_PX: int = 160

    # Screen share
    RESHARE_GRACE_SECONDS: int = 5

    # Evidence capture
    PERIODIC_CAPTURE_MS: int = 15_000
    SNAPSHOT_JPEG_QUALITY: int = 70

    class Config:
        env_prefix = "PROCTOR_"
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = ProctorSettings()


@lru_cache(maxsize=1)
def get_settings() -> ProctorSettings:
    """Cached settings instance"""
    return ProctorSettings()
