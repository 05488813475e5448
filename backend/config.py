"""
Application configuration.

Responsibilities:
- Read environment variables
- Provide a typed, immutable config object
- Validate the shared audio format once, at startup

Non-responsibilities:
- No protocol constants (see constants.py)
- No runtime mutation
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from constants import (
    AUDIO_CHANNELS,
    AUDIO_FRAME_MS,
    AUDIO_SAMPLE_RATE_HZ,
    BUSY_POLICIES,
    BUSY_POLICY_ALLOW,
    CAPTURE_WINDOW_S,
    OPUS_BITRATE_BPS,
    OPUS_INBAND_FEC,
    STT_MODEL_DEFAULT,
    TTS_MODEL_DEFAULT,
    TTS_OUTPUT_RATE_HZ,
    TTS_VOICE_DEFAULT,
    AudioFormat,
)
from errors import ConfigError


@dataclass(frozen=True)
class AppConfig:
    """
    Immutable application configuration.

    Constructed once at process startup.
    Passed downward to bootstrap code, which hands the single AudioFormat
    to every pipeline component.
    """

    # ------------------------------------------------------------------
    # Environment
    # ------------------------------------------------------------------

    env: str

    # ------------------------------------------------------------------
    # OpenAI speech
    # ------------------------------------------------------------------

    openai_api_key: str | None
    tts_model: str
    tts_voice: str
    stt_model: str

    # ------------------------------------------------------------------
    # Voice pipeline
    # ------------------------------------------------------------------

    audio_format: AudioFormat
    capture_window_s: float
    busy_policy: str

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self) -> None:
        """
        Validate cross-field invariants.

        Raises:
            ConfigError on the first invalid value.
        """
        try:
            self.audio_format.validate()
        except ValueError as exc:
            raise ConfigError(f"invalid voice audio format: {exc}") from exc

        # Playback never resamples
        if self.audio_format.sample_rate_hz != TTS_OUTPUT_RATE_HZ:
            raise ConfigError(
                f"VOICE_SAMPLE_RATE_HZ={self.audio_format.sample_rate_hz} must match "
                f"the speech synthesis output rate ({TTS_OUTPUT_RATE_HZ})"
            )

        if self.capture_window_s <= 0:
            raise ConfigError("VOICE_CAPTURE_WINDOW_S must be > 0")

        if self.busy_policy not in BUSY_POLICIES:
            raise ConfigError(
                f"VOICE_BUSY_POLICY={self.busy_policy!r} "
                f"(expected one of {BUSY_POLICIES})"
            )

    def require_openai_key(self) -> str:
        if not self.openai_api_key:
            raise ConfigError("OPENAI_API_KEY environment variable not set")
        return self.openai_api_key

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @staticmethod
    def load_from_env() -> AppConfig:
        """
        Load configuration from environment variables.

        Raises:
            ConfigError if a value is malformed or fails validation.
        """
        audio_format = AudioFormat(
            sample_rate_hz=_env_int("VOICE_SAMPLE_RATE_HZ", AUDIO_SAMPLE_RATE_HZ),
            channels=_env_int("VOICE_CHANNELS", AUDIO_CHANNELS),
            frame_ms=_env_int("VOICE_FRAME_MS", AUDIO_FRAME_MS),
            bitrate_bps=_env_int("VOICE_BITRATE_BPS", OPUS_BITRATE_BPS),
            inband_fec=_env_bool("VOICE_INBAND_FEC", OPUS_INBAND_FEC),
        )

        config = AppConfig(
            env=os.environ.get("ENV", "dev"),

            openai_api_key=os.environ.get("OPENAI_API_KEY"),
            tts_model=os.environ.get("OPENAI_TTS_MODEL", TTS_MODEL_DEFAULT),
            tts_voice=os.environ.get("OPENAI_TTS_VOICE", TTS_VOICE_DEFAULT),
            stt_model=os.environ.get("OPENAI_STT_MODEL", STT_MODEL_DEFAULT),

            audio_format=audio_format,
            capture_window_s=_env_float("VOICE_CAPTURE_WINDOW_S", CAPTURE_WINDOW_S),
            busy_policy=os.environ.get("VOICE_BUSY_POLICY", BUSY_POLICY_ALLOW).lower(),
        )
        config.validate()
        return config


# ----------------------------------------------------------------------
# Env parsing helpers
# ----------------------------------------------------------------------

def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name}={raw!r} is not an integer") from exc


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigError(f"{name}={raw!r} is not a number") from exc


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")
