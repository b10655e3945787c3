"""Tests for pipeline health tracking."""

import pytest

from c64bot.observability import health_state


@pytest.fixture(autouse=True)
def fresh_state(monkeypatch):
    state = health_state._HealthState(
        lock=health_state.threading.Lock(),
        inflight=0,
        last_progress_monotonic=1000.0,
        last_progress_event=None,
    )
    monkeypatch.setattr(health_state, "_STATE", state)
    return state


@pytest.fixture
def clock(monkeypatch):
    now = {"t": 1000.0}
    monkeypatch.setattr(health_state.time, "monotonic", lambda: now["t"])
    return now


def test_idle_process_is_healthy_even_when_quiet(clock):
    clock["t"] += 10_000

    snap = health_state.snapshot(stall_seconds=180)

    assert snap.status == "healthy"
    assert snap.inflight == 0


def test_inflight_without_progress_is_stalled(clock):
    health_state.inflight_inc()
    clock["t"] += 181

    snap = health_state.snapshot(stall_seconds=180)

    assert snap.status == "stalled"
    assert snap.inflight == 1
    assert snap.last_progress_event == "pipeline.start"


def test_progress_resets_stall_clock(clock):
    health_state.inflight_inc()
    clock["t"] += 170
    health_state.mark_progress("artifact.generated")
    clock["t"] += 170

    snap = health_state.snapshot(stall_seconds=180)

    assert snap.status == "healthy"
    assert snap.last_progress_event == "artifact.generated"


def test_inflight_never_negative(clock):
    health_state.inflight_dec()
    health_state.inflight_dec()

    assert health_state.snapshot().inflight == 0


def test_snapshot_serializes_camel_case(clock):
    data = health_state.snapshot().to_dict(by_alias=True)
    assert data["service"] == "c64bot"
    assert "lastProgressAgeS" in data
