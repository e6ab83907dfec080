"""Delivery retrier: bounded exponential backoff over Dispatcher attempts.

State machine per dispatch:
    PENDING -> DELIVERED
    PENDING -> RETRYING -> ... -> DELIVERED | PERMANENTLY_FAILED
    PENDING -> PERMANENTLY_FAILED  (non-transient failure)
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from contextlib import AbstractAsyncContextManager, nullcontext
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from alertroute.dispatch import Delivered, Dispatcher
from alertroute.observability.emitter import emit
from alertroute.observability.events import (
    AlertDelivered,
    DeliveryAttempted,
    DeliveryFailed,
    DeliveryRetrying,
)
from alertroute.types import AlertRule, IncomingEvent

if TYPE_CHECKING:
    from alertroute.config import EngineConfig


class DeliveryState(StrEnum):
    PENDING = "pending"
    RETRYING = "retrying"
    DELIVERED = "delivered"
    PERMANENTLY_FAILED = "permanently_failed"


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 5
    base_delay: float = 0.5  # seconds
    max_delay: float = 30.0
    multiplier: float = 2.0

    def delay_for(self, failed_attempts: int) -> float:
        """Backoff before the next attempt, after `failed_attempts` failures."""
        delay = self.base_delay * (self.multiplier ** max(failed_attempts - 1, 0))
        return min(delay, self.max_delay)

    @classmethod
    def from_config(cls, config: EngineConfig) -> RetryPolicy:
        return cls(
            max_attempts=config.max_attempts,
            base_delay=config.base_delay,
            max_delay=config.max_delay,
            multiplier=config.backoff_multiplier,
        )


@dataclass
class DeliveryResult:
    state: DeliveryState
    attempts: int
    provider: str = ""
    reason: str = ""
    abandoned: bool = False  # rule deleted or suspended mid-flight
    history: list[DeliveryState] = field(default_factory=list)

    @property
    def delivered(self) -> bool:
        return self.state == DeliveryState.DELIVERED


class DeliveryRetrier:
    """Drives one admitted event to DELIVERED or PERMANENTLY_FAILED.

    `limiter` is held around each provider call only, never across a
    backoff sleep.
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        policy: RetryPolicy | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        limiter: AbstractAsyncContextManager | None = None,
    ) -> None:
        self.dispatcher = dispatcher
        self.policy = policy or RetryPolicy()
        self._sleep = sleep
        self._limiter = limiter if limiter is not None else nullcontext()

    async def deliver(
        self,
        rule: AlertRule,
        event: IncomingEvent,
        still_active: Callable[[], bool] = lambda: True,
    ) -> DeliveryResult:
        history = [DeliveryState.PENDING]
        involved = str(event.involved_object)
        provider_key = f"{rule.namespace}/{rule.spec.provider_ref.name}"
        start = time.perf_counter()
        attempt = 0

        while True:
            attempt += 1
            emit(DeliveryAttempted(rule=rule.key, provider=provider_key, attempt=attempt))
            async with self._limiter:
                outcome = await self.dispatcher.dispatch(rule, event)

            if isinstance(outcome, Delivered):
                history.append(DeliveryState.DELIVERED)
                emit(
                    AlertDelivered(
                        rule=rule.key,
                        provider=outcome.provider,
                        involved_object=involved,
                        attempts=attempt,
                        latency_ms=(time.perf_counter() - start) * 1000,
                    )
                )
                return DeliveryResult(
                    DeliveryState.DELIVERED, attempt, provider=outcome.provider, history=history
                )

            reason = outcome.reason
            abandoned = False
            if outcome.transient and attempt >= self.policy.max_attempts:
                reason = f"retries exhausted after {attempt} attempts: {outcome.reason}"
            elif outcome.transient and not still_active():
                reason = f"rule no longer active: {outcome.reason}"
                abandoned = True
            elif outcome.transient:
                delay = self.policy.delay_for(attempt)
                history.append(DeliveryState.RETRYING)
                emit(
                    DeliveryRetrying(
                        rule=rule.key,
                        provider=outcome.provider,
                        attempt=attempt,
                        delay=delay,
                        reason=outcome.reason,
                    )
                )
                await self._sleep(delay)
                if still_active():
                    continue
                reason = f"rule no longer active: {outcome.reason}"
                abandoned = True

            history.append(DeliveryState.PERMANENTLY_FAILED)
            emit(
                DeliveryFailed(
                    rule=rule.key,
                    provider=outcome.provider,
                    involved_object=involved,
                    attempts=attempt,
                    reason=reason,
                    transient=outcome.transient,
                )
            )
            return DeliveryResult(
                DeliveryState.PERMANENTLY_FAILED,
                attempt,
                provider=outcome.provider,
                reason=reason,
                abandoned=abandoned,
                history=history,
            )
