"""OpenAI client construction (one client per process)."""

from __future__ import annotations

from openai import AsyncOpenAI

from config import AppConfig


def build_openai_client(config: AppConfig) -> AsyncOpenAI:
    """
    Build the shared AsyncOpenAI client.

    Raises:
        ConfigError if OPENAI_API_KEY is missing.
    """
    return AsyncOpenAI(api_key=config.require_openai_key())
