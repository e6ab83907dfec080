"""AlertEngine: admits rules, fans events out to them, records rule status.

Each (event, rule) pair is an independent pass. Passes run concurrently;
provider calls are bounded by a semaphore that is released during backoff.
The only shared mutable state is each rule's status, written under that
rule's asyncio.Lock.

Usage::

    engine = AlertEngine(providers)
    await engine.apply(rule)
    outcomes = await engine.process(event)
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterable, Awaitable, Callable, Iterable
from dataclasses import dataclass
from enum import StrEnum

from alertroute.conditions import (
    DELIVERY_FAILED,
    PROVIDER_NOT_FOUND,
    VALIDATION_FAILED,
    mark_not_ready,
    mark_ready,
)
from alertroute.config import EngineConfig
from alertroute.dispatch import Dispatcher
from alertroute.matching import Verdict, evaluate
from alertroute.observability.emitter import emit
from alertroute.observability.events import EventDropped, RuleAdmitted, RuleRejected
from alertroute.providers import Provider, ProviderRegistry
from alertroute.retry import DeliveryResult, DeliveryRetrier, RetryPolicy
from alertroute.types import AlertRule, AlertStatus, IncomingEvent
from alertroute.validation import AlertValidationError, admit


class Decision(StrEnum):
    """Final outcome of one (event, rule) pass."""

    NOT_MATCHED = "not_matched"
    INVALID_RULE = "invalid_rule"
    SUSPENDED = "suspended"
    SEVERITY_DROPPED = "severity_dropped"
    EXCLUDED = "excluded"
    DELIVERED = "delivered"
    PERMANENTLY_FAILED = "permanently_failed"


_DROPPED = {
    Verdict.NOT_MATCHED: Decision.NOT_MATCHED,
    Verdict.INVALID_RULE: Decision.INVALID_RULE,
    Verdict.SUSPENDED: Decision.SUSPENDED,
    Verdict.SEVERITY_DROPPED: Decision.SEVERITY_DROPPED,
    Verdict.EXCLUDED: Decision.EXCLUDED,
}


@dataclass(frozen=True)
class RuleOutcome:
    rule: str
    decision: Decision
    attempts: int = 0
    reason: str = ""

    @property
    def dispatched(self) -> bool:
        return self.decision in (Decision.DELIVERED, Decision.PERMANENTLY_FAILED)


class AlertEngine:
    """Event-to-alert decision engine over a set of Alert rules."""

    def __init__(
        self,
        providers: ProviderRegistry | None = None,
        config: EngineConfig | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.config = config or EngineConfig()
        self.providers = providers or ProviderRegistry()
        self.dispatcher = Dispatcher(self.providers, timeout=self.config.dispatch_timeout)
        self._semaphore = asyncio.Semaphore(self.config.max_concurrency)
        self.retrier = DeliveryRetrier(
            self.dispatcher,
            RetryPolicy.from_config(self.config),
            sleep=sleep,
            limiter=self._semaphore,
        )
        self._rules: dict[str, AlertRule] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    # ------------------------------------------------------------------
    # Rule lifecycle
    # ------------------------------------------------------------------

    def rules(self) -> list[AlertRule]:
        return [self._rules[k] for k in sorted(self._rules)]

    def get(self, key: str) -> AlertRule | None:
        return self._rules.get(key)

    def _lock(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    async def apply(self, rule: AlertRule) -> AlertRule:
        """Declare or update a rule. Admission runs only on a newer generation.

        Re-applying the stored generation, or an older one, keeps the stored
        rule and its status.
        """
        async with self._lock(rule.key):
            current = self._rules.get(rule.key)
            if current is not None:
                if rule.generation <= current.status.observed_generation:
                    return current
                rule.status = AlertStatus(
                    observed_generation=current.status.observed_generation,
                    conditions=current.get_conditions(),
                )
            self._admit(rule)
            self._rules[rule.key] = rule
        return rule

    async def delete(self, key: str) -> AlertRule | None:
        """Retire a rule. In-flight deliveries finish without further retries."""
        async with self._lock(key):
            rule = self._rules.pop(key, None)
        self._locks.pop(key, None)
        return rule

    async def register_provider(self, namespace: str, name: str, provider: Provider) -> None:
        """Add a provider and re-admit rules in that namespace that reference it."""
        self.providers.register(namespace, name, provider)
        for rule in list(self._rules.values()):
            if rule.namespace == namespace and rule.spec.provider_ref.name == name:
                async with self._lock(rule.key):
                    if self._rules.get(rule.key) is rule:
                        self._admit(rule)

    def _admit(self, rule: AlertRule) -> None:
        """Run admission and record the Ready condition. Caller holds the lock."""
        generation = rule.generation
        try:
            admit(rule)
        except AlertValidationError as err:
            message = "; ".join(err.problems)
            mark_not_ready(rule, VALIDATION_FAILED, message, generation)
            emit(RuleRejected(rule.key, generation, VALIDATION_FAILED, message))
        else:
            if self.providers.resolve(rule.namespace, rule.spec.provider_ref) is None:
                rule.accepted = False
                message = f"provider {rule.namespace}/{rule.spec.provider_ref.name} not found"
                mark_not_ready(rule, PROVIDER_NOT_FOUND, message, generation)
                emit(RuleRejected(rule.key, generation, PROVIDER_NOT_FOUND, message))
            else:
                mark_ready(rule, "Alert initialized", generation)
                emit(RuleAdmitted(rule.key, generation, rule.spec.provider_ref.name))
        rule.status.observed_generation = generation

    # ------------------------------------------------------------------
    # Event processing
    # ------------------------------------------------------------------

    async def process(self, event: IncomingEvent) -> list[RuleOutcome]:
        """Run the event against every rule; one outcome per rule, key order."""
        snapshot = self.rules()
        return list(await asyncio.gather(*(self._pass(rule, event) for rule in snapshot)))

    async def run(
        self, events: Iterable[IncomingEvent] | AsyncIterable[IncomingEvent]
    ) -> list[list[RuleOutcome]]:
        """Process a stream of events concurrently; results in input order.

        At most max_concurrency events are in flight; the stream is read at
        most one event ahead of that window.
        """
        window = asyncio.Semaphore(self.config.max_concurrency)
        tasks: list[asyncio.Task[list[RuleOutcome]]] = []

        async def start(event: IncomingEvent) -> None:
            await window.acquire()
            task = asyncio.ensure_future(self.process(event))
            task.add_done_callback(lambda _: window.release())
            tasks.append(task)

        try:
            if isinstance(events, AsyncIterable):
                async for event in events:
                    await start(event)
            else:
                for event in events:
                    await start(event)
        except BaseException:
            for task in tasks:
                task.cancel()
            raise
        return list(await asyncio.gather(*tasks))

    def _is_active(self, rule: AlertRule) -> bool:
        return self._rules.get(rule.key) is rule and not rule.spec.suspend

    async def _pass(self, rule: AlertRule, event: IncomingEvent) -> RuleOutcome:
        verdict = evaluate(rule, event, self.config.exclusion_timeout)
        if verdict != Verdict.ADMITTED:
            if verdict != Verdict.NOT_MATCHED:
                emit(EventDropped(rule.key, str(event.involved_object), verdict.value))
            return RuleOutcome(rule.key, _DROPPED[verdict])

        result = await self.retrier.deliver(
            rule, event, still_active=lambda: self._is_active(rule)
        )
        await self._record(rule, result)

        if result.delivered:
            return RuleOutcome(rule.key, Decision.DELIVERED, result.attempts)
        return RuleOutcome(rule.key, Decision.PERMANENTLY_FAILED, result.attempts, result.reason)

    async def _record(self, rule: AlertRule, result: DeliveryResult) -> None:
        """Write the delivery health onto the rule's Ready condition."""
        if result.abandoned:
            return
        async with self._lock(rule.key):
            # Replaced, deleted or suspended while in flight: leave status alone
            if not self._is_active(rule):
                return
            if result.delivered:
                mark_ready(rule, f"Delivered to {result.provider}", rule.generation)
            else:
                mark_not_ready(rule, DELIVERY_FAILED, result.reason, rule.generation)
