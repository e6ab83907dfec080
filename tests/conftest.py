"""Shared fixtures: rule/event builders and scripted providers.

Providers here record payloads and fail on a script so retry and status
behavior can be driven deterministically. Backoff sleeps are recorded,
never awaited for real.
"""

from __future__ import annotations

from typing import Any

import pytest

from alertroute.providers import DeliveryError, ProviderRegistry
from alertroute.types import (
    AlertRule,
    AlertSpec,
    EventSourceSelector,
    IncomingEvent,
    InvolvedObject,
    ProviderRef,
)
from alertroute.validation import admit


@pytest.fixture(autouse=True)
def _reset_observability():
    """Emitter and logging state never leaks between tests."""
    from alertroute.observability.emitter import reset

    reset()
    yield
    reset()


# =============================================================================
# Builders
# =============================================================================


def build_rule(
    sources: list[dict[str, str]] | None = None,
    *,
    name: str = "api-alerts",
    namespace: str = "prod",
    provider: str = "slack",
    severity: str = "info",
    exclusions: list[str] | None = None,
    summary: str = "",
    suspend: bool = False,
    generation: int = 1,
) -> AlertRule:
    if sources is None:
        sources = [{"kind": "Deployment", "namespace": "*", "name": "api"}]
    return AlertRule(
        name=name,
        namespace=namespace,
        generation=generation,
        spec=AlertSpec(
            provider_ref=ProviderRef(provider),
            event_sources=[EventSourceSelector.from_dict(s, namespace) for s in sources],
            event_severity=severity,
            exclusion_list=list(exclusions or []),
            summary=summary,
            suspend=suspend,
        ),
    )


def build_event(
    kind: str = "Deployment",
    namespace: str = "prod",
    name: str = "api",
    severity: str = "info",
    message: str = "rollout complete",
) -> IncomingEvent:
    return IncomingEvent(
        involved_object=InvolvedObject(kind=kind, namespace=namespace, name=name),
        severity=severity,
        message=message,
        reason="Progressing",
        timestamp="2026-10-18T12:00:00Z",
    )


@pytest.fixture
def make_rule():
    return build_rule


@pytest.fixture
def make_admitted_rule():
    def _make(*args: Any, **kwargs: Any) -> AlertRule:
        return admit(build_rule(*args, **kwargs))

    return _make


@pytest.fixture
def make_event():
    return build_event


# =============================================================================
# Scripted providers
# =============================================================================


class ScriptedProvider:
    """Fails with the scripted errors in order, then succeeds."""

    def __init__(self, failures: list[DeliveryError] | None = None) -> None:
        self.failures = list(failures or [])
        self.calls = 0
        self.delivered: list[dict[str, Any]] = []

    async def send(self, payload: dict[str, Any]) -> None:
        self.calls += 1
        if self.failures:
            raise self.failures.pop(0)
        self.delivered.append(payload)


class AlwaysFailingProvider:
    def __init__(self, transient: bool = True) -> None:
        self.transient = transient
        self.calls = 0

    async def send(self, payload: dict[str, Any]) -> None:
        self.calls += 1
        raise DeliveryError("upstream returned HTTP 503", transient=self.transient)


class SleepRecorder:
    """Stands in for asyncio.sleep; records requested backoff delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def provider() -> ScriptedProvider:
    return ScriptedProvider()


@pytest.fixture
def registry(provider: ScriptedProvider) -> ProviderRegistry:
    reg = ProviderRegistry()
    reg.register("prod", "slack", provider)
    return reg
