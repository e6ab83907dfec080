"""alertroute: event-to-alert matching and dispatch for declarative Alert rules."""

from alertroute.conditions import Condition, ConditionHolder, ConditionStatus
from alertroute.config import EngineConfig
from alertroute.dispatch import Delivered, Dispatcher, Failed
from alertroute.engine import AlertEngine, Decision, RuleOutcome
from alertroute.matching import admits, evaluate, is_excluded, is_suspended, matches
from alertroute.providers import (
    DeliveryError,
    LogProvider,
    NoOpProvider,
    Provider,
    ProviderRegistry,
    WebhookProvider,
)
from alertroute.retry import DeliveryRetrier, DeliveryState, RetryPolicy
from alertroute.types import (
    ANY,
    AlertRule,
    AlertSpec,
    AlertStatus,
    EventSourceSelector,
    Exact,
    IncomingEvent,
    InvolvedObject,
    ProviderRef,
    Severity,
)
from alertroute.validation import AlertValidationError, admit, validate_spec

__version__ = "0.1.0"

__all__ = [
    # Types
    "ANY",
    "AlertRule",
    "AlertSpec",
    "AlertStatus",
    "EventSourceSelector",
    "Exact",
    "IncomingEvent",
    "InvolvedObject",
    "ProviderRef",
    "Severity",
    "Condition",
    "ConditionHolder",
    "ConditionStatus",
    # Admission
    "AlertValidationError",
    "admit",
    "validate_spec",
    # Matching
    "matches",
    "is_suspended",
    "admits",
    "is_excluded",
    "evaluate",
    # Delivery
    "Provider",
    "ProviderRegistry",
    "WebhookProvider",
    "LogProvider",
    "NoOpProvider",
    "DeliveryError",
    "Dispatcher",
    "Delivered",
    "Failed",
    "DeliveryRetrier",
    "DeliveryState",
    "RetryPolicy",
    # Engine
    "AlertEngine",
    "Decision",
    "RuleOutcome",
    "EngineConfig",
]
