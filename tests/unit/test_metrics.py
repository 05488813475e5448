# pylint: disable=missing-module-docstring,missing-function-docstring

import pytest

from observability import metrics


def test_timed_emits_one_metric_with_details(captured_events):
    with metrics.timed("playback_duration_ms", guild_id="g1") as details:
        details["frames_sent"] = 3

    assert len(captured_events) == 1
    event = captured_events[0]
    assert event["event_type"] == "METRIC_TIMER"
    assert event["metric"] == "playback_duration_ms"
    assert event["guild_id"] == "g1"
    assert event["details"] == {"frames_sent": 3}
    assert event["value_ms"] >= 0
    assert metrics.active_timer_count() == 0


def test_timed_stops_timer_on_error(captured_events):
    with pytest.raises(RuntimeError):
        with metrics.timed("synthesis_ms"):
            raise RuntimeError("boom")

    assert [e["metric"] for e in captured_events] == ["synthesis_ms"]
    assert metrics.active_timer_count() == 0


def test_stop_unknown_timer_is_noop(captured_events):
    assert metrics.stop_timer("timer_missing") is None
    assert captured_events == []
