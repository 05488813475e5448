"""
Process wiring for the voice pipeline.

Used by the chat layer at startup:

    config = load_config()
    service = build_voice_service(config, discord_client)
"""

from __future__ import annotations

import discord
from dotenv import load_dotenv

from adapters.asr.openai_whisper import OpenAITranscriber
from adapters.openai_client import build_openai_client
from adapters.tts.openai_tts import OpenAISpeechSynthesizer
from audio.opus_codec import OpusFrameCodec
from config import AppConfig
from observability.logger import log_event
from orchestrator.voice_service import VoiceService
from pipeline.capture import CaptureDriver
from pipeline.playback import PlaybackDriver
from session.registry import ConnectionRegistry
from transport.discord_transport import DiscordTransportFactory


def load_config() -> AppConfig:
    """Load .env (if present) and build the validated AppConfig."""
    load_dotenv()
    return AppConfig.load_from_env()


def build_voice_service(config: AppConfig, discord_client: discord.Client) -> VoiceService:
    """
    Wire one VoiceService per process.

    Every component receives the same AudioFormat instance.

    Raises:
        ConfigError if the OpenAI key is missing.
    """
    audio_format = config.audio_format
    openai_client = build_openai_client(config)
    codec_factory = OpusFrameCodec.factory(audio_format)

    registry = ConnectionRegistry(
        open_transport=DiscordTransportFactory(discord_client, audio_format),
    )
    playback = PlaybackDriver(
        synthesizer=OpenAISpeechSynthesizer(
            client=openai_client,
            model=config.tts_model,
            default_voice=config.tts_voice,
        ),
        audio_format=audio_format,
        codec_factory=codec_factory,
    )
    capture = CaptureDriver(
        recognizer=OpenAITranscriber(client=openai_client, model=config.stt_model),
        audio_format=audio_format,
        codec_factory=codec_factory,
        window_s=config.capture_window_s,
    )

    log_event({
        "event_type": "voice_service_ready",
        "env": config.env,
        "sample_rate_hz": audio_format.sample_rate_hz,
        "channels": audio_format.channels,
        "frame_ms": audio_format.frame_ms,
        "busy_policy": config.busy_policy,
    })
    return VoiceService(
        registry=registry,
        playback=playback,
        capture=capture,
        busy_policy=config.busy_policy,
    )
