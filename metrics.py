"""
Prometheus metrics instrumentation for fortune sessions.

This module provides metrics tracking for:
- Chat turns by outcome
- Interpretation results by source (service or local fallback)
- Failures of best-effort calls (persistence, gift generation)
- External service latency
- Phase transitions and active session count

Usage:
    from metrics import track_service_call, track_chat_turn, active_sessions_gauge

    with track_service_call("chat_turn"):
        # ... call the chat service ...
        pass

    track_chat_turn("sent")
    active_sessions_gauge.inc()
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Generator

from prometheus_client import Counter, Gauge, Histogram

# === COUNTERS ===

chat_turns_total = Counter(
    "fortune_chat_turns_total",
    "Conversational turns by outcome",
    ["status"],
)

interpretations_total = Counter(
    "fortune_interpretations_total",
    "Completed interpretations by source",
    ["source"],
)

best_effort_failures_total = Counter(
    "fortune_best_effort_failures_total",
    "Failures of fire-and-forget calls",
    ["kind"],
)

phase_transitions_total = Counter(
    "fortune_phase_transitions_total",
    "Session phase transitions by target phase",
    ["phase"],
)

errors_total = Counter(
    "fortune_errors_total",
    "Total number of errors encountered",
    ["error_type"],
)

# === HISTOGRAMS ===

service_latency_seconds = Histogram(
    "fortune_service_latency_seconds",
    "Time taken for external service calls",
    ["operation"],
    buckets=(0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, float("inf")),
)

# === GAUGES ===

active_sessions_gauge = Gauge(
    "fortune_active_sessions",
    "Current number of open fortune sessions",
)

# === CONTEXT MANAGERS ===


@contextmanager
def track_service_call(operation: str) -> Generator[None, None, None]:
    """
    Context manager to time an external service call.

    Args:
        operation: The call being made ("chat_turn", "interpret", "save_reading", "gift")
    """
    start_time = time.time()
    try:
        yield
    finally:
        service_latency_seconds.labels(operation=operation).observe(time.time() - start_time)


def track_chat_turn(status: str) -> None:
    """Count a chat turn outcome (e.g. "sent", "fallback", "rate_limited")."""
    chat_turns_total.labels(status=status).inc()


def track_interpretation(source: str) -> None:
    """Count a completed interpretation by source ("service" or "fallback")."""
    interpretations_total.labels(source=source).inc()


def track_best_effort_failure(kind: str) -> None:
    """Count a swallowed failure of a fire-and-forget call ("persistence", "gift")."""
    best_effort_failures_total.labels(kind=kind).inc()


def track_phase_transition(phase: str) -> None:
    phase_transitions_total.labels(phase=phase).inc()


def track_error(error_type: str) -> None:
    """
    Track an error occurrence.

    Args:
        error_type: The type of error (e.g., "chat_service_unavailable", "interpretation_failed")
    """
    errors_total.labels(error_type=error_type).inc()
