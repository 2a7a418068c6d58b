"""Shared utilities for handlers.

Every handler delegates to a reconciler and translates its outcome into
kopf's vocabulary: a requeue becomes a ``kopf.TemporaryError`` with the
requested delay, an ``OperatorError`` becomes the kopf error it maps to.
"""

import logging

import kopf

from ..constants import HANDLER_ENTRY_LOG_LEVEL
from ..errors import OperatorError
from ..models.record import ObjectKey
from ..observability.logging import set_correlation_id
from ..services.base_reconciler import BaseReconciler, RequeueDirective
from ..services.context import ReconcileContext

logger = logging.getLogger(__name__)


def log_handler_entry(
    handler_type: str,
    reconciler: BaseReconciler,
    key: ObjectKey,
    ctx: ReconcileContext,
) -> None:
    """
    Log a handler invocation and adopt the reconciliation's correlation ID.

    Logged at HANDLER_ENTRY_LOG_LEVEL, so busy clusters can drop entry
    lines to DEBUG without losing the reconciliation logs that follow.
    """
    set_correlation_id(ctx.correlation_id)
    logger.log(
        HANDLER_ENTRY_LOG_LEVEL,
        f"Handler invoked: {handler_type} {reconciler.kind} {key}",
        extra={
            **ctx.logger.context,
            "handler_type": handler_type,
            "kind": reconciler.kind,
        },
    )


def raise_for_directive(directive: RequeueDirective) -> None:
    """Ask kopf to call the handler again when the reconciler requested it."""
    if directive.requeue:
        raise kopf.TemporaryError(
            f"Requeue requested in {directive.requeue_after}s",
            delay=directive.requeue_after,
        )


async def run_reconciler(
    reconciler: BaseReconciler,
    handler_type: str,
    name: str,
    namespace: str,
) -> None:
    """
    Reconcile one resource on behalf of a kopf handler.

    Args:
        reconciler: Reconciler of the resource kind
        handler_type: Cause reported by kopf (create, update, resume, delete)
        name: Resource name
        namespace: Resource namespace

    Raises:
        kopf.TemporaryError: Requeue requested or retryable failure
        kopf.PermanentError: Non-retryable failure
    """
    # kopf passes its Reason enum; log the plain value
    handler_type = getattr(handler_type, "value", handler_type)
    key = ObjectKey(namespace, name)
    ctx = ReconcileContext.for_resource(reconciler.plural, namespace, name)
    log_handler_entry(handler_type, reconciler, key, ctx)

    try:
        directive = await reconciler.reconcile(key, ctx)
    except OperatorError as e:
        raise e.as_kopf_error() from e

    raise_for_directive(directive)
