"""Process health for the HTTP health check.

Tracks how many attachment pipelines are in flight and when the last one
made progress, so a wedged emulator run shows up as ``stalled``.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass

from c64bot.models.base import JsonModel


class HealthSnapshot(JsonModel):
    service: str = "c64bot"
    status: str = "healthy"  # healthy | stalled

    inflight: int = 0
    last_progress_age_s: float = 0.0
    last_progress_event: str | None = None


@dataclass(slots=True)
class _HealthState:
    lock: threading.Lock
    inflight: int
    last_progress_monotonic: float
    last_progress_event: str | None


_STATE = _HealthState(
    lock=threading.Lock(),
    inflight=0,
    last_progress_monotonic=time.monotonic(),
    last_progress_event=None,
)


def mark_progress(event: str | None = None) -> None:
    now = time.monotonic()
    with _STATE.lock:
        _STATE.last_progress_monotonic = now
        if event:
            _STATE.last_progress_event = event


def inflight_inc() -> None:
    with _STATE.lock:
        _STATE.inflight += 1
        _STATE.last_progress_monotonic = time.monotonic()
        _STATE.last_progress_event = "pipeline.start"


def inflight_dec() -> None:
    with _STATE.lock:
        _STATE.inflight = max(0, _STATE.inflight - 1)
        _STATE.last_progress_monotonic = time.monotonic()
        _STATE.last_progress_event = "pipeline.end"


def snapshot(*, stall_seconds: int = 180) -> HealthSnapshot:
    now = time.monotonic()
    with _STATE.lock:
        inflight = int(_STATE.inflight)
        age = float(max(0.0, now - _STATE.last_progress_monotonic))
        last_event = _STATE.last_progress_event

    stalled = inflight > 0 and age >= float(max(1, stall_seconds))

    return HealthSnapshot(
        status="stalled" if stalled else "healthy",
        inflight=inflight,
        last_progress_age_s=age,
        last_progress_event=last_event,
    )
