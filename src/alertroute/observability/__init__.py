"""alertroute observability: typed events routed to structured logs.

Public API:
    emit(event)     - Fire-and-forget event emission (no-op if not configured)
    configure(cfg)  - Initialize emitter + subscribers (call once at startup)
    flush()         - Await pending subscriber callbacks before the loop closes
    reset()         - Reset for testing
    get_logger(name)
"""

from alertroute.observability.config import ObservabilityConfig
from alertroute.observability.emitter import configure, emit, flush, is_configured, reset
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
from alertroute.observability.logging import get_logger

__all__ = [
    # Core API
    "emit",
    "configure",
    "flush",
    "is_configured",
    "reset",
    "ObservabilityConfig",
    "get_logger",
    # Rule admission
    "RuleAdmitted",
    "RuleRejected",
    # Filtering
    "EventDropped",
    "ExclusionTimedOut",
    # Delivery
    "DeliveryAttempted",
    "DeliveryRetrying",
    "AlertDelivered",
    "DeliveryFailed",
]
