"""Routes all observability events to structured log lines.

Registered by emitter.configure(). Uses get_logger() from the logging
module, so it follows whichever formatter is configured.
"""

from __future__ import annotations

from dataclasses import asdict

from alertroute.observability.events import (
    AlertDelivered,
    DeliveryAttempted,
    DeliveryFailed,
    DeliveryRetrying,
    EventDropped,
    ExclusionTimedOut,
    RuleAdmitted,
    RuleRejected,
)
from alertroute.observability.linker import AlertRouteEventLinker
from alertroute.observability.logging import get_logger


def _get_logger():
    """Lazy logger -- always reflects the active formatter."""
    return get_logger("alertroute.events")


def _to_dict(event: object) -> dict:
    return asdict(event)  # type: ignore[arg-type]


def register_structlog_subscriber(verbose: bool = True) -> None:
    """Register log handlers for all events on AlertRouteEventLinker.

    With verbose=False only warnings, deliveries and failures are logged.
    """

    @AlertRouteEventLinker.on(RuleRejected)
    def _log_rule_rejected(event: RuleRejected) -> None:
        _get_logger().warning("rule.rejected", **_to_dict(event))

    @AlertRouteEventLinker.on(AlertDelivered)
    def _log_alert_delivered(event: AlertDelivered) -> None:
        _get_logger().info("alert.delivered", **_to_dict(event))

    @AlertRouteEventLinker.on(DeliveryFailed)
    def _log_delivery_failed(event: DeliveryFailed) -> None:
        _get_logger().error("delivery.failed", **_to_dict(event))

    @AlertRouteEventLinker.on(DeliveryRetrying)
    def _log_delivery_retrying(event: DeliveryRetrying) -> None:
        _get_logger().warning("delivery.retrying", **_to_dict(event))

    @AlertRouteEventLinker.on(ExclusionTimedOut)
    def _log_exclusion_timeout(event: ExclusionTimedOut) -> None:
        _get_logger().warning("exclusion.timeout", **_to_dict(event))

    if not verbose:
        return

    @AlertRouteEventLinker.on(RuleAdmitted)
    def _log_rule_admitted(event: RuleAdmitted) -> None:
        _get_logger().info("rule.admitted", **_to_dict(event))

    @AlertRouteEventLinker.on(EventDropped)
    def _log_event_dropped(event: EventDropped) -> None:
        _get_logger().debug("event.dropped", **_to_dict(event))

    @AlertRouteEventLinker.on(DeliveryAttempted)
    def _log_delivery_attempted(event: DeliveryAttempted) -> None:
        _get_logger().debug("delivery.attempted", **_to_dict(event))
