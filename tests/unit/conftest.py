# pylint: disable=missing-module-docstring,missing-function-docstring

import json
from typing import Any

import pytest

from observability import logger


@pytest.fixture
def captured_events(monkeypatch: pytest.MonkeyPatch) -> list[dict[str, Any]]:
    """Decoded JSONL events written through observability.logger."""
    events: list[dict[str, Any]] = []

    def fake_print(line: str) -> None:
        events.append(json.loads(line))

    monkeypatch.setattr(logger, "_print", fake_print)
    return events
