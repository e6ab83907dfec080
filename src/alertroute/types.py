"""Core types for alert routing.

AlertRule = declared rule (metadata + spec + status) routing events to a provider.
EventSourceSelector = (kind, namespace, name) origin pattern, wildcards explicit.
IncomingEvent = already-classified cluster event, immutable once received.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

import regex

from alertroute.conditions import Condition

WILDCARD = "*"
DEFAULT_NAMESPACE = "default"


# =============================================================================
# Severity
# =============================================================================


class Severity(StrEnum):
    """Coarse event importance. Ordered: INFO < ERROR."""

    INFO = "info"
    ERROR = "error"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    @classmethod
    def normalize(cls, value: Any) -> Severity:
        """Map any upstream value to a Severity; unknown values are INFO."""
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        return cls.INFO


_SEVERITY_RANK = {Severity.INFO: 0, Severity.ERROR: 1}


# =============================================================================
# Selector values: Exact(value) | ANY
# =============================================================================


@dataclass(frozen=True)
class Exact:
    value: str

    def accepts(self, candidate: str) -> bool:
        return candidate == self.value

    def __str__(self) -> str:
        return self.value


class AnyValue:
    """Matches every value. Use the ANY singleton."""

    _instance: AnyValue | None = None

    def __new__(cls) -> AnyValue:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def accepts(self, candidate: str) -> bool:
        return True

    def __repr__(self) -> str:
        return "ANY"

    def __str__(self) -> str:
        return WILDCARD


ANY = AnyValue()

SelectorValue = Exact | AnyValue


def parse_selector_value(raw: str | None, default: str | None = None) -> SelectorValue:
    """Declared string form -> tagged value. Empty falls back to default."""
    value = (raw or "").strip()
    if value == WILDCARD:
        return ANY
    if not value and default is not None:
        return Exact(default)
    return Exact(value)


@dataclass(frozen=True)
class EventSourceSelector:
    """(kind, namespace, name) origin pattern. Many per rule, OR-ed."""

    kind: str
    namespace: SelectorValue
    name: SelectorValue

    @classmethod
    def from_dict(cls, d: dict[str, Any], default_namespace: str) -> EventSourceSelector:
        return cls(
            kind=str(d.get("kind") or "").strip(),
            namespace=parse_selector_value(d.get("namespace"), default=default_namespace),
            name=parse_selector_value(d.get("name")),
        )

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind, "namespace": str(self.namespace), "name": str(self.name)}

    def __str__(self) -> str:
        return f"{self.kind}/{self.namespace}/{self.name}"


# =============================================================================
# Events
# =============================================================================


@dataclass(frozen=True)
class InvolvedObject:
    kind: str
    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.kind}/{self.namespace}/{self.name}"


@dataclass(frozen=True)
class IncomingEvent:
    """A discrete cluster event summary, produced externally."""

    involved_object: InvolvedObject
    severity: str
    message: str
    reason: str = ""
    timestamp: str = ""
    metadata: dict[str, str] = field(default_factory=dict, hash=False)

    @property
    def level(self) -> Severity:
        return Severity.normalize(self.severity)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> IncomingEvent:
        """Accepts {"involvedObject": {...}, ...} or flat kind/namespace/name keys."""
        obj = d.get("involvedObject")
        if not isinstance(obj, dict):
            obj = d
        return cls(
            involved_object=InvolvedObject(
                kind=str(obj.get("kind") or ""),
                namespace=str(obj.get("namespace") or ""),
                name=str(obj.get("name") or ""),
            ),
            severity=str(d.get("severity") or ""),
            message=str(d.get("message") or ""),
            reason=str(d.get("reason") or ""),
            timestamp=str(d.get("timestamp") or ""),
            metadata={str(k): str(v) for k, v in (d.get("metadata") or {}).items()},
        )


# =============================================================================
# Alert resource
# =============================================================================


@dataclass(frozen=True)
class ProviderRef:
    name: str


@dataclass
class AlertSpec:
    provider_ref: ProviderRef
    event_sources: list[EventSourceSelector]
    event_severity: str = Severity.INFO.value  # kept raw; validated on admission
    exclusion_list: list[str] = field(default_factory=list)
    summary: str = ""
    suspend: bool = False

    @property
    def severity(self) -> Severity:
        return Severity.normalize(self.event_severity)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "providerRef": {"name": self.provider_ref.name},
            "eventSeverity": self.event_severity,
            "eventSources": [s.to_dict() for s in self.event_sources],
        }
        if self.exclusion_list:
            d["exclusionList"] = list(self.exclusion_list)
        if self.summary:
            d["summary"] = self.summary
        if self.suspend:
            d["suspend"] = True
        return d


@dataclass
class AlertStatus:
    observed_generation: int = -1
    conditions: list[Condition] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "observedGeneration": self.observed_generation,
            "conditions": [c.to_dict() for c in self.conditions],
        }


@dataclass
class AlertRule:
    """An Alert resource. Implements ConditionHolder."""

    name: str
    spec: AlertSpec
    namespace: str = DEFAULT_NAMESPACE
    generation: int = 1
    status: AlertStatus = field(default_factory=AlertStatus)

    # Set by admission; matching never compiles patterns itself
    compiled_exclusions: tuple[regex.Pattern[str], ...] = field(
        default=(), repr=False, compare=False
    )
    accepted: bool = field(default=False, repr=False, compare=False)

    @property
    def key(self) -> str:
        return f"{self.namespace}/{self.name}"

    def get_conditions(self) -> list[Condition]:
        return list(self.status.conditions)

    def set_conditions(self, conditions: list[Condition]) -> None:
        self.status.conditions = list(conditions)

    def to_dict(self) -> dict[str, Any]:
        return {
            "apiVersion": "alertroute/v1",
            "kind": "Alert",
            "metadata": {
                "name": self.name,
                "namespace": self.namespace,
                "generation": self.generation,
            },
            "spec": self.spec.to_dict(),
            "status": self.status.to_dict(),
        }
