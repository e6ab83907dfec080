"""Tests for the delivery retrier."""

from __future__ import annotations

import pytest

from alertroute.dispatch import Dispatcher
from alertroute.providers import DeliveryError, ProviderRegistry
from alertroute.retry import DeliveryRetrier, DeliveryState, RetryPolicy

from conftest import AlwaysFailingProvider, ScriptedProvider


def _retrier(provider, sleeper, **policy) -> DeliveryRetrier:
    reg = ProviderRegistry()
    reg.register("prod", "slack", provider)
    return DeliveryRetrier(Dispatcher(reg), RetryPolicy(**policy), sleep=sleeper)


class TestRetryPolicy:
    def test_exponential_delays(self):
        policy = RetryPolicy(base_delay=0.5, multiplier=2.0, max_delay=30.0)
        assert [policy.delay_for(n) for n in range(1, 5)] == [0.5, 1.0, 2.0, 4.0]

    def test_delay_capped(self):
        policy = RetryPolicy(base_delay=1.0, multiplier=10.0, max_delay=5.0)
        assert policy.delay_for(3) == 5.0


class TestDeliveryRetrier:
    async def test_first_attempt_succeeds(self, sleeper, make_admitted_rule, make_event):
        provider = ScriptedProvider()
        result = await _retrier(provider, sleeper).deliver(make_admitted_rule(), make_event())
        assert result.delivered
        assert result.attempts == 1
        assert result.history == [DeliveryState.PENDING, DeliveryState.DELIVERED]
        assert sleeper.delays == []

    async def test_recovers_after_transient_failures(self, sleeper, make_admitted_rule, make_event):
        provider = ScriptedProvider([DeliveryError("HTTP 503"), DeliveryError("HTTP 503")])
        result = await _retrier(provider, sleeper).deliver(make_admitted_rule(), make_event())
        assert result.delivered
        assert result.attempts == 3
        assert result.history == [
            DeliveryState.PENDING,
            DeliveryState.RETRYING,
            DeliveryState.RETRYING,
            DeliveryState.DELIVERED,
        ]
        assert sleeper.delays == [0.5, 1.0]
        assert len(provider.delivered) == 1

    async def test_exhausts_attempts(self, sleeper, make_admitted_rule, make_event):
        provider = AlwaysFailingProvider()
        result = await _retrier(provider, sleeper, max_attempts=3).deliver(
            make_admitted_rule(), make_event()
        )
        assert result.state == DeliveryState.PERMANENTLY_FAILED
        assert result.attempts == 3
        assert provider.calls == 3
        assert result.reason.startswith("retries exhausted after 3 attempts")
        assert sleeper.delays == [0.5, 1.0]
        assert not result.abandoned

    async def test_permanent_failure_not_retried(self, sleeper, make_admitted_rule, make_event):
        provider = AlwaysFailingProvider(transient=False)
        result = await _retrier(provider, sleeper).deliver(make_admitted_rule(), make_event())
        assert result.state == DeliveryState.PERMANENTLY_FAILED
        assert result.attempts == 1
        assert result.history == [DeliveryState.PENDING, DeliveryState.PERMANENTLY_FAILED]
        assert sleeper.delays == []

    async def test_single_attempt_policy(self, sleeper, make_admitted_rule, make_event):
        result = await _retrier(AlwaysFailingProvider(), sleeper, max_attempts=1).deliver(
            make_admitted_rule(), make_event()
        )
        assert result.attempts == 1
        assert sleeper.delays == []

    @pytest.mark.parametrize("active_checks", [0, 1])
    async def test_abandoned_when_rule_goes_inactive(
        self, sleeper, make_admitted_rule, make_event, active_checks
    ):
        remaining = [active_checks]

        def still_active() -> bool:
            if remaining[0] > 0:
                remaining[0] -= 1
                return True
            return False

        provider = AlwaysFailingProvider()
        result = await _retrier(provider, sleeper).deliver(
            make_admitted_rule(), make_event(), still_active=still_active
        )
        assert result.abandoned
        assert result.state == DeliveryState.PERMANENTLY_FAILED
        assert result.reason.startswith("rule no longer active")
        assert provider.calls == 1

    async def test_limiter_held_only_around_dispatch(self, make_admitted_rule, make_event):
        log: list[str] = []

        class Limiter:
            async def __aenter__(self):
                log.append("acquire")

            async def __aexit__(self, *exc):
                log.append("release")

        async def sleep(delay: float) -> None:
            log.append("sleep")

        reg = ProviderRegistry()
        reg.register("prod", "slack", ScriptedProvider([DeliveryError("HTTP 503")]))
        retrier = DeliveryRetrier(Dispatcher(reg), RetryPolicy(), sleep=sleep, limiter=Limiter())

        result = await retrier.deliver(make_admitted_rule(), make_event())

        assert result.delivered
        assert log == ["acquire", "release", "sleep", "acquire", "release"]
