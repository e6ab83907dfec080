"""Dispatcher: one bounded outbound call per admitted (rule, event) pair.

Every failure comes back as a Failed value; nothing raises to the caller.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from alertroute.observability.logging import get_logger
from alertroute.providers import DeliveryError, ProviderRegistry, build_payload
from alertroute.types import AlertRule, IncomingEvent


@dataclass(frozen=True)
class Delivered:
    provider: str


@dataclass(frozen=True)
class Failed:
    provider: str
    reason: str
    transient: bool


DispatchOutcome = Delivered | Failed


class Dispatcher:
    """Resolves the rule's providerRef and sends the payload under a timeout."""

    def __init__(self, registry: ProviderRegistry, timeout: float = 10.0) -> None:
        self.registry = registry
        self.timeout = timeout

    async def dispatch(self, rule: AlertRule, event: IncomingEvent) -> DispatchOutcome:
        provider_key = f"{rule.namespace}/{rule.spec.provider_ref.name}"
        provider = self.registry.resolve(rule.namespace, rule.spec.provider_ref)
        if provider is None:
            return Failed(provider_key, f"provider {provider_key} not found", transient=False)

        payload = build_payload(rule, event)
        try:
            await asyncio.wait_for(provider.send(payload), timeout=self.timeout)
        except TimeoutError:
            return Failed(provider_key, f"timed out after {self.timeout}s", transient=True)
        except DeliveryError as err:
            return Failed(provider_key, err.reason, transient=err.transient)
        except Exception as err:
            get_logger("alertroute.dispatch").error(
                "dispatch.unexpected_error",
                rule=rule.key,
                provider=provider_key,
                exc_info=True,
            )
            return Failed(provider_key, f"unexpected provider error: {err!r}", transient=False)
        return Delivered(provider_key)
