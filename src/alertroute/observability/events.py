"""Typed event dataclasses for alertroute observability.

All events are frozen (immutable) dataclasses. Engine modules emit these;
they don't know about logs. Subscribers handle routing.

Grouped by stage: rule admission, event filtering, delivery.
"""

from __future__ import annotations

from dataclasses import dataclass


# ---------------------------------------------------------------------------
# Rule admission
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RuleAdmitted:
    rule: str  # "namespace/name"
    generation: int
    provider: str


@dataclass(frozen=True)
class RuleRejected:
    rule: str
    generation: int
    reason: str  # "ValidationFailed" | "ProviderNotFound"
    message: str


# ---------------------------------------------------------------------------
# Event filtering
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EventDropped:
    rule: str
    involved_object: str  # "Kind/namespace/name"
    decision: str  # "suspended" | "severity_dropped" | "excluded" | "invalid_rule"


@dataclass(frozen=True)
class ExclusionTimedOut:
    rule: str
    involved_object: str
    pattern: str
    timeout: float  # seconds budget for the whole exclusion list


# ---------------------------------------------------------------------------
# Delivery
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DeliveryAttempted:
    rule: str
    provider: str
    attempt: int


@dataclass(frozen=True)
class DeliveryRetrying:
    rule: str
    provider: str
    attempt: int
    delay: float
    reason: str


@dataclass(frozen=True)
class AlertDelivered:
    rule: str
    provider: str
    involved_object: str
    attempts: int
    latency_ms: float


@dataclass(frozen=True)
class DeliveryFailed:
    rule: str
    provider: str
    involved_object: str
    attempts: int
    reason: str
    transient: bool  # last failure was transient (retries exhausted)

