"""Singleton emitter: configure once, emit everywhere.

The global emit() function is the only API engine modules need.
It's a no-op when not configured (zero overhead in tests).
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from pyventus.events import EventEmitter

if TYPE_CHECKING:
    from alertroute.observability.config import ObservabilityConfig

_emitter: EventEmitter | None = None
_configured: bool = False


def emit(event: Any) -> None:
    """Fire-and-forget event emission. No-op if not configured."""
    if _emitter is not None:
        _emitter.emit(event)


def configure(config: ObservabilityConfig | None = None) -> EventEmitter:
    """Initialize the global emitter and register subscribers.

    Called once at startup (CLI entry, test setup).
    Idempotent -- second call returns existing emitter.
    """
    global _emitter, _configured

    if _configured and _emitter is not None:
        return _emitter

    from alertroute.observability.config import ObservabilityConfig

    cfg = config or ObservabilityConfig()

    # Structured logging first, so subscribers log through it
    from alertroute.observability.logging import setup_logging

    setup_logging(cfg)

    from pyventus.core.processing.asyncio import AsyncIOProcessingService

    from alertroute.observability.linker import AlertRouteEventLinker

    _emitter = EventEmitter(
        event_linker=AlertRouteEventLinker,
        event_processor=AsyncIOProcessingService(),
    )

    from alertroute.observability.subscribers.structlog_sub import (
        register_structlog_subscriber,
    )

    register_structlog_subscriber(verbose=cfg.log_events)

    _configured = True
    return _emitter


async def flush() -> None:
    """Wait for subscriber callbacks scheduled on the running loop.

    Call at the end of an asyncio.run body, before the loop closes.
    """
    current = asyncio.current_task()
    while True:
        pending = [t for t in asyncio.all_tasks() if t is not current and not t.done()]
        if not pending:
            return
        await asyncio.gather(*pending, return_exceptions=True)


def is_configured() -> bool:
    return _configured


def reset() -> None:
    """Reset for testing."""
    global _emitter, _configured

    from alertroute.observability.linker import AlertRouteEventLinker
    from alertroute.observability.logging import shutdown_logging

    shutdown_logging()
    AlertRouteEventLinker.remove_all()

    _emitter = None
    _configured = False
