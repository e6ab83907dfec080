"""Notification providers: where admitted alerts are delivered.

Provider is the protocol. Code against it.
WebhookProvider: JSON POST via httpx (generic webhook receivers).
LogProvider: structured log line via the configured logging backend.
NoOpProvider: discards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

import httpx

from alertroute.observability.logging import get_logger
from alertroute.types import AlertRule, IncomingEvent, ProviderRef

REPORTING_CONTROLLER = "alertroute"


class DeliveryError(Exception):
    """A provider could not deliver. transient=True means retrying may help."""

    def __init__(self, reason: str, transient: bool = True) -> None:
        super().__init__(reason)
        self.reason = reason
        self.transient = transient


@runtime_checkable
class Provider(Protocol):
    """Where alert notifications go."""

    async def send(self, payload: dict[str, Any]) -> None: ...


def build_payload(rule: AlertRule, event: IncomingEvent) -> dict[str, Any]:
    """Provider-neutral alert body. The rule summary rides in metadata."""
    metadata = dict(event.metadata)
    if rule.spec.summary:
        metadata["summary"] = rule.spec.summary
    obj = event.involved_object
    return {
        "involvedObject": {"kind": obj.kind, "namespace": obj.namespace, "name": obj.name},
        "severity": event.level.value,
        "timestamp": event.timestamp,
        "message": event.message,
        "reason": event.reason,
        "metadata": metadata,
        "reportingController": REPORTING_CONTROLLER,
        "alert": rule.key,
    }


# ---------------------------------------------------------------------------
# Implementations
# ---------------------------------------------------------------------------


class WebhookProvider:
    """POST the payload as JSON to a generic webhook address.

    Timeouts, connection errors, 429 and 5xx are transient; any other
    non-2xx status is permanent.
    """

    def __init__(
        self,
        address: str,
        timeout: float = 10.0,
        headers: dict[str, str] | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.address = address
        self.timeout = timeout
        self.headers = dict(headers or {})
        self._client = client

    async def send(self, payload: dict[str, Any]) -> None:
        try:
            if self._client is not None:
                response = await self._post(self._client, payload)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await self._post(client, payload)
        except httpx.TimeoutException as err:
            raise DeliveryError(f"timeout posting to {self.address}", transient=True) from err
        except httpx.TransportError as err:
            raise DeliveryError(
                f"connection error posting to {self.address}: {err}", transient=True
            ) from err

        status = response.status_code
        if status == 429 or status >= 500:
            raise DeliveryError(f"{self.address} returned HTTP {status}", transient=True)
        if status >= 400:
            raise DeliveryError(f"{self.address} returned HTTP {status}", transient=False)

    async def _post(self, client: httpx.AsyncClient, payload: dict[str, Any]) -> httpx.Response:
        return await client.post(
            self.address, json=payload, headers=self.headers, timeout=self.timeout
        )


class LogProvider:
    """Log alerts via the configured logging backend."""

    async def send(self, payload: dict[str, Any]) -> None:
        get_logger("alertroute.alerts").warning(
            "alert.fired",
            alert=payload.get("alert"),
            severity=payload.get("severity"),
            involved_object=payload.get("involvedObject"),
            message=payload.get("message"),
            metadata=payload.get("metadata"),
        )


class NoOpProvider:
    """Discards all alerts."""

    async def send(self, payload: dict[str, Any]) -> None:
        pass


# ---------------------------------------------------------------------------
# Declared providers + registry
# ---------------------------------------------------------------------------

PROVIDER_TYPES = ("generic", "log", "noop")


@dataclass
class ProviderSpec:
    """A declared Provider resource."""

    name: str
    namespace: str
    type: str = "generic"
    address: str = ""
    timeout: float = 10.0
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def key(self) -> str:
        return f"{self.namespace}/{self.name}"

    def build(self) -> Provider:
        if self.type == "generic":
            if not self.address:
                raise ValueError(f"provider {self.key}: address is required for type 'generic'")
            return WebhookProvider(self.address, timeout=self.timeout, headers=self.headers)
        if self.type == "log":
            return LogProvider()
        if self.type == "noop":
            return NoOpProvider()
        raise ValueError(
            f"provider {self.key}: unknown type {self.type!r}. Available: {list(PROVIDER_TYPES)}"
        )


class ProviderRegistry:
    """Providers by namespace/name. Rules resolve refs in their own namespace."""

    def __init__(self) -> None:
        self._providers: dict[str, Provider] = {}

    def register(self, namespace: str, name: str, provider: Provider) -> None:
        self._providers[f"{namespace}/{name}"] = provider

    def unregister(self, namespace: str, name: str) -> Provider | None:
        return self._providers.pop(f"{namespace}/{name}", None)

    def resolve(self, namespace: str, ref: ProviderRef) -> Provider | None:
        return self._providers.get(f"{namespace}/{ref.name}")

    def keys(self) -> list[str]:
        return sorted(self._providers)

    def __contains__(self, key: str) -> bool:
        return key in self._providers

    def __len__(self) -> int:
        return len(self._providers)
