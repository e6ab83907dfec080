"""Status conditions and the ConditionHolder capability.

Any entity exposing get_conditions()/set_conditions() can carry conditions;
the helpers here do the read-modify-write and transition-time bookkeeping.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Protocol, runtime_checkable

READY = "Ready"

# Ready reasons
SUCCEEDED = "Succeeded"
VALIDATION_FAILED = "ValidationFailed"
PROVIDER_NOT_FOUND = "ProviderNotFound"
DELIVERY_FAILED = "DeliveryFailed"

CONFIGURATION_REASONS = frozenset({VALIDATION_FAILED, PROVIDER_NOT_FOUND})


class ConditionStatus(StrEnum):
    TRUE = "True"
    FALSE = "False"
    UNKNOWN = "Unknown"


@dataclass(frozen=True)
class Condition:
    """A named, timestamped health entry."""

    type: str
    status: ConditionStatus
    reason: str
    message: str = ""
    last_transition_time: str = ""  # ISO, changes only when status flips
    observed_generation: int = -1

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "status": self.status.value,
            "reason": self.reason,
            "message": self.message,
            "lastTransitionTime": self.last_transition_time,
            "observedGeneration": self.observed_generation,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Condition:
        return cls(
            type=d["type"],
            status=ConditionStatus(d.get("status", ConditionStatus.UNKNOWN.value)),
            reason=d.get("reason", ""),
            message=d.get("message", ""),
            last_transition_time=d.get("lastTransitionTime", ""),
            observed_generation=int(d.get("observedGeneration", -1)),
        )


@runtime_checkable
class ConditionHolder(Protocol):
    """Capability: the object exposes get/set of a condition list."""

    def get_conditions(self) -> list[Condition]: ...

    def set_conditions(self, conditions: list[Condition]) -> None: ...


def _now() -> str:
    return datetime.now(UTC).isoformat()


def get_condition(holder: ConditionHolder, type_: str) -> Condition | None:
    for cond in holder.get_conditions():
        if cond.type == type_:
            return cond
    return None


def set_condition(
    holder: ConditionHolder,
    type_: str,
    status: ConditionStatus,
    reason: str,
    message: str = "",
    observed_generation: int = -1,
) -> Condition:
    """Insert or replace the condition of the given type.

    The transition time is carried over when the status did not change.
    """
    conditions = holder.get_conditions()
    previous = next((c for c in conditions if c.type == type_), None)
    if previous is not None and previous.status == status:
        transition = previous.last_transition_time
    else:
        transition = _now()

    cond = Condition(
        type=type_,
        status=status,
        reason=reason,
        message=message,
        last_transition_time=transition,
        observed_generation=observed_generation,
    )
    updated = [c for c in conditions if c.type != type_]
    updated.append(cond)
    holder.set_conditions(updated)
    return cond


def mark_ready(holder: ConditionHolder, message: str, observed_generation: int = -1) -> Condition:
    return set_condition(
        holder, READY, ConditionStatus.TRUE, SUCCEEDED, message, observed_generation
    )


def mark_not_ready(
    holder: ConditionHolder, reason: str, message: str, observed_generation: int = -1
) -> Condition:
    return set_condition(
        holder, READY, ConditionStatus.FALSE, reason, message, observed_generation
    )


def is_ready(holder: ConditionHolder) -> bool:
    cond = get_condition(holder, READY)
    return cond is not None and cond.status == ConditionStatus.TRUE
