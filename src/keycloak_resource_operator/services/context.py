"""
Per-reconciliation context.

Every component a reconciliation calls receives the same ``ReconcileContext``
instead of reaching for module-level loggers: it carries the structured
logger bound to the resource, the correlation ID and the cancellation
signal.
"""

import asyncio
from dataclasses import dataclass, field

from keycloak_resource_operator.observability.logging import (
    OperatorLogger,
    generate_correlation_id,
)

# Set by the kopf cleanup handler when the operator shuts down
shutdown_event = asyncio.Event()


@dataclass
class ReconcileContext:
    """Structured logger and cancellation signal for one reconciliation."""

    logger: OperatorLogger
    cancel_event: asyncio.Event = field(default_factory=lambda: shutdown_event)
    correlation_id: str = field(default_factory=generate_correlation_id)

    @classmethod
    def for_resource(
        cls,
        resource_type: str,
        namespace: str,
        name: str,
        cancel_event: asyncio.Event | None = None,
    ) -> "ReconcileContext":
        logger = OperatorLogger("keycloak_resource_operator.reconcile").bind(
            resource_type=resource_type,
            namespace=namespace,
            resource_name=name,
        )
        return cls(logger=logger, cancel_event=cancel_event or shutdown_event)

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def checkpoint(self) -> None:
        """Raise ``asyncio.CancelledError`` once cancellation was requested.

        Called before every store write and Keycloak call so that a shutdown
        stops a reconciliation between side effects, never in the middle of one.
        """
        if self.cancel_event.is_set():
            raise asyncio.CancelledError("reconciliation cancelled")
