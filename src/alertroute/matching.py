"""Matching pipeline: pattern matcher, suspend gate, severity and exclusion filters.

All functions are synchronous. Malformed events never raise; they
simply don't match.
"""

from __future__ import annotations

import time
from enum import StrEnum

from alertroute.observability.emitter import emit
from alertroute.observability.events import ExclusionTimedOut
from alertroute.types import AlertRule, EventSourceSelector, IncomingEvent, InvolvedObject

DEFAULT_EXCLUSION_TIMEOUT = 0.1


class Verdict(StrEnum):
    """Result of running one (rule, event) pair through the filters."""

    NOT_MATCHED = "not_matched"
    INVALID_RULE = "invalid_rule"
    SUSPENDED = "suspended"
    SEVERITY_DROPPED = "severity_dropped"
    EXCLUDED = "excluded"
    ADMITTED = "admitted"


def selector_matches(selector: EventSourceSelector, obj: InvolvedObject) -> bool:
    if not (obj.kind and obj.namespace and obj.name):
        return False
    return (
        selector.kind == obj.kind
        and selector.namespace.accepts(obj.namespace)
        and selector.name.accepts(obj.name)
    )


def matches(rule: AlertRule, event: IncomingEvent) -> bool:
    """True if any of the rule's selectors matches the event origin."""
    return any(selector_matches(s, event.involved_object) for s in rule.spec.event_sources)


def is_suspended(rule: AlertRule) -> bool:
    return rule.spec.suspend


def admits(rule: AlertRule, event: IncomingEvent) -> bool:
    """info threshold admits everything; error admits only error events."""
    return event.level.rank >= rule.spec.severity.rank


def is_excluded(
    rule: AlertRule,
    event: IncomingEvent,
    timeout: float = DEFAULT_EXCLUSION_TIMEOUT,
) -> bool:
    """True if the full message matches any compiled exclusion pattern.

    The whole exclusion list shares one time budget per event. A search that
    runs out of budget counts as not excluded and emits ExclusionTimedOut.
    """
    if not rule.compiled_exclusions:
        return False
    deadline = time.monotonic() + timeout
    for pattern in rule.compiled_exclusions:
        remaining = max(deadline - time.monotonic(), 0.0)
        try:
            found = pattern.search(event.message, timeout=remaining)
        except TimeoutError:
            emit(
                ExclusionTimedOut(
                    rule.key, str(event.involved_object), pattern.pattern, timeout
                )
            )
            return False
        if found:
            return True
    return False


def evaluate(
    rule: AlertRule,
    event: IncomingEvent,
    exclusion_timeout: float = DEFAULT_EXCLUSION_TIMEOUT,
) -> Verdict:
    """Matcher -> suspend gate -> severity filter -> exclusion filter."""
    if not matches(rule, event):
        return Verdict.NOT_MATCHED
    if not rule.accepted:
        return Verdict.INVALID_RULE
    if is_suspended(rule):
        return Verdict.SUSPENDED
    if not admits(rule, event):
        return Verdict.SEVERITY_DROPPED
    if is_excluded(rule, event, exclusion_timeout):
        return Verdict.EXCLUDED
    return Verdict.ADMITTED
