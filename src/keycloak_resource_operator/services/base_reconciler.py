"""
Base reconciler class providing the common reconciliation loop.

This module defines the BaseReconciler class that implements the pattern
every resource kind follows: fetch the record, resolve its owners and
credentials, connect to Keycloak, then either finalize the record or run
its synchronization pipeline. Status is written exactly once per pass, on
every exit path.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..constants import KIND_KEYCLOAK, PLURAL_KEYCLOAK, STATUS_OK
from ..errors import (
    OperatorError,
    OwnerUnresolvedError,
    ResourceNotFoundError,
    TemporaryError,
    ValidationError,
)
from ..models.record import DesiredStateRecord, ObjectKey
from ..observability.logging import OperatorLogger
from ..observability.metrics import metrics_collector
from ..settings import settings
from ..utils.keycloak_admin import IdentityProviderClient
from ..utils.kubernetes import (
    KubernetesRecordStore,
    RecordStore,
    write_with_conflict_retry,
)
from .connection import ConnectionManager
from .context import ReconcileContext
from .credentials import CredentialResolver
from .deletion import DeletionProtocol
from .pipeline import PipelineStep, SyncPipeline, SyncRequest

SpecT = TypeVar("SpecT", bound=BaseModel)


@dataclass(frozen=True)
class RequeueDirective:
    """When, if at all, the resource should be reconciled again."""

    requeue_after: float | None = None

    @property
    def requeue(self) -> bool:
        return self.requeue_after is not None


@dataclass
class ReconcileState:
    """Everything one reconciliation pass learns about its record."""

    record: DesiredStateRecord
    spec: Any = None
    keycloak: DesiredStateRecord | None = None
    realm: DesiredStateRecord | None = None
    realm_name: str | None = None
    client: IdentityProviderClient | None = None


def failure_backoff(failure_count: int) -> int:
    """Retry delay after ``failure_count`` consecutive failures."""
    exponent = max(failure_count - 1, 0)
    delay = settings.failure_backoff_base_seconds * 2**exponent
    return min(delay, settings.failure_backoff_max_seconds)


def parse_spec(model: type[SpecT], record: DesiredStateRecord) -> SpecT:
    """Validate the raw spec of ``record`` against ``model``."""
    try:
        return model.model_validate(record.spec)
    except PydanticValidationError as e:
        raise ValidationError(f"{record.kind} {record.key} has an invalid spec: {e}") from e


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class BaseReconciler(ABC):
    """
    Base class for all resource reconcilers.

    Subclasses declare their kind, plural and finalizer, resolve their owner
    chain and provide the pipeline steps and the remote delete. Collaborators
    are injected so tests can substitute the store and the Keycloak client.
    """

    kind: str
    plural: str
    finalizer: str | None = None

    def __init__(
        self,
        store: RecordStore | None = None,
        connection_manager: ConnectionManager | None = None,
        credential_resolver: CredentialResolver | None = None,
    ):
        """
        Initialize base reconciler.

        Args:
            store: Record store, a Kubernetes-backed one if not provided
            connection_manager: Builds and probes Keycloak clients
            credential_resolver: Resolves connection credentials from secrets
        """
        self.store = store or KubernetesRecordStore()
        self.connection_manager = connection_manager or ConnectionManager()
        self.credential_resolver = credential_resolver or CredentialResolver(self.store)
        self.deletion = (
            DeletionProtocol(self.store, self.finalizer) if self.finalizer else None
        )
        self.logger = OperatorLogger(self.__class__.__name__)

    async def reconcile(
        self, key: ObjectKey, ctx: ReconcileContext | None = None
    ) -> RequeueDirective:
        """
        Main reconciliation entry point with metrics tracking.

        Args:
            key: Namespace and name of the record
            ctx: Reconcile context, created for the record if not provided

        Returns:
            Whether and when to reconcile the record again

        Raises:
            OperatorError: Carrying a failure-aware retry delay
        """
        ctx = ctx or ReconcileContext.for_resource(self.plural, key.namespace, key.name)

        ctx.checkpoint()
        record = await self.store.get(self.plural, key)
        if record is None:
            ctx.logger.info(f"{self.kind} {key} not found, nothing to reconcile")
            return RequeueDirective()

        start_time = time.time()
        ctx.logger.log_reconciliation_start(
            resource_type=self.plural,
            resource_name=key.name,
            namespace=key.namespace,
            correlation_id=ctx.correlation_id,
        )

        snapshot = record.status_snapshot()
        state = ReconcileState(record=record)
        failed = True

        async with metrics_collector.track_reconciliation(
            resource_type=self.plural, namespace=key.namespace
        ):
            try:
                try:
                    directive = await self._reconcile_state(state, ctx)
                except ResourceNotFoundError:
                    failed = False
                    ctx.logger.info(f"{self.kind} {key} was deleted during reconciliation")
                    return RequeueDirective()
                except Exception as e:
                    error = self._record_failure(record, e)
                    ctx.logger.log_reconciliation_error(
                        resource_type=self.plural,
                        resource_name=key.name,
                        namespace=key.namespace,
                        error=error,
                        duration=time.time() - start_time,
                    )
                    if error is e:
                        raise
                    raise error from e

                failed = False
                ctx.logger.log_reconciliation_success(
                    resource_type=self.plural,
                    resource_name=key.name,
                    namespace=key.namespace,
                    duration=time.time() - start_time,
                )
                return directive

            finally:
                try:
                    await self._flush_status(record, snapshot, ctx, propagate=not failed)
                finally:
                    if state.client is not None:
                        await self._close_client(state.client, ctx)

    async def _reconcile_state(
        self, state: ReconcileState, ctx: ReconcileContext
    ) -> RequeueDirective:
        await self.resolve_owners(state, ctx)

        credential = await self.credential_resolver.resolve(state.keycloak, ctx)
        result = await self.connection_manager.connect(credential, ctx)
        state.client = result.client

        if self.connection_manager.apply_transition(state.record, result.connected):
            ctx.logger.info(
                f"Keycloak connection changed to connected={result.connected}",
                connected=result.connected,
            )

        if not result.connected:
            ctx.logger.info(
                f"Keycloak is not reachable, retrying in {settings.connection_retry_seconds}s",
                connected=False,
            )
            return RequeueDirective(requeue_after=settings.connection_retry_seconds)

        directive = await self.synchronize(state, ctx)
        self._record_success(state.record)
        return directive

    async def synchronize(
        self, state: ReconcileState, ctx: ReconcileContext
    ) -> RequeueDirective:
        """
        Finalize a terminating record, or add the finalizer and run the pipeline.

        The finalizer write completes before the first pipeline step runs,
        so no remote entity is ever created for a record without it.
        """
        record = state.record
        entity = self.entity_name(state)

        async def remote_delete() -> None:
            await self.remote_delete(state)

        if record.is_terminating:
            await self.deletion.try_delete(
                self.plural, record, remote_delete, ctx, entity=entity
            )
            return RequeueDirective()

        await self.deletion.try_delete(
            self.plural, record, remote_delete, ctx, entity=entity
        )
        if record.is_terminating or not record.has_finalizer(self.finalizer):
            # Deletion was requested while the finalizer was being written;
            # the deletion event finalizes the record
            ctx.logger.info(
                f"{self.kind} {record.key} is being deleted, skipping synchronization",
                finalizer=self.finalizer,
            )
            return RequeueDirective()

        request = SyncRequest(record=record, spec=state.spec, realm_name=state.realm_name)
        await SyncPipeline(self.steps()).run(request, state.client, ctx)
        return RequeueDirective()

    @abstractmethod
    async def resolve_owners(
        self, state: ReconcileState, ctx: ReconcileContext
    ) -> None:
        """Parse the spec and fill in ``state.keycloak`` (and realm fields)."""

    def steps(self) -> list[PipelineStep]:
        """Pipeline steps for an active record."""
        return []

    def entity_name(self, state: ReconcileState) -> str:
        """Natural key of the owned remote entity, for logs and errors."""
        return f"{self.kind} {state.record.key}"

    async def remote_delete(self, state: ReconcileState) -> None:
        """Delete the owned remote entity."""
        raise NotImplementedError

    async def resolve_parent(
        self,
        record: DesiredStateRecord,
        kind: str,
        plural: str,
        fallback_name: str | None,
        field: str,
        ctx: ReconcileContext,
    ) -> DesiredStateRecord:
        """
        Find the parent of ``record``: owner reference first, then a spec field.

        Raises:
            OwnerUnresolvedError: No parent named, or the parent does not exist
        """
        reference = record.owner_reference(kind)
        name = reference.name if reference else fallback_name
        if not name:
            raise OwnerUnresolvedError(
                f"{record.kind} {record.key} has no {kind} owner: "
                f"set an owner reference or spec.{field}"
            )

        ctx.checkpoint()
        parent = await self.store.get(plural, ObjectKey(record.metadata.namespace, name))
        if parent is None:
            raise OwnerUnresolvedError(
                f"{kind} {record.metadata.namespace}/{name} not found"
            )
        return parent

    async def resolve_keycloak(
        self,
        record: DesiredStateRecord,
        fallback_name: str | None,
        field: str,
        ctx: ReconcileContext,
    ) -> DesiredStateRecord:
        """Find the ``Keycloak`` owning ``record`` and require it to be connected."""
        keycloak = await self.resolve_parent(
            record, KIND_KEYCLOAK, PLURAL_KEYCLOAK, fallback_name, field, ctx
        )
        if not keycloak.status.connected:
            raise OwnerUnresolvedError(f"Keycloak {keycloak.key} is not connected")
        return keycloak

    def _set_value(self, record: DesiredStateRecord, value: str) -> None:
        if record.status.value != value:
            record.status.value = value
            record.status.last_transition = _now_iso()

    def _record_success(self, record: DesiredStateRecord) -> None:
        self._set_value(record, STATUS_OK)
        record.status.failure_count = 0

    def _record_failure(
        self, record: DesiredStateRecord, error: Exception
    ) -> OperatorError:
        """Store the error in the status and return it with a backoff delay."""
        if isinstance(error, OperatorError):
            operator_error = error
        else:
            # Wrap unexpected errors as temporary to allow retry
            operator_error = TemporaryError(
                f"Unexpected error during reconciliation: {error}"
            )

        self._set_value(record, str(operator_error))
        record.status.failure_count += 1
        if operator_error.retryable:
            operator_error.delay = failure_backoff(record.status.failure_count)
        return operator_error

    async def _close_client(
        self, client: IdentityProviderClient, ctx: ReconcileContext
    ) -> None:
        try:
            await client.aclose()
        except Exception as e:
            # The pass already finished; a failed close must not change its outcome
            ctx.logger.warning(
                f"Failed to close Keycloak client: {e}", error_type=type(e).__name__
            )

    async def _flush_status(
        self,
        record: DesiredStateRecord,
        snapshot: dict[str, Any],
        ctx: ReconcileContext,
        propagate: bool,
    ) -> None:
        """
        Write the status block if it changed during this pass.

        A record deleted in the meantime is not an error. When another error
        is already propagating, a failed write is logged instead of raised so
        the original error is not masked.
        """
        if record.status_snapshot() == snapshot:
            return

        desired = record.status

        def apply_status(target: DesiredStateRecord) -> None:
            target.status.connected = desired.connected
            target.status.value = desired.value
            target.status.failure_count = desired.failure_count
            target.status.last_transition = desired.last_transition

        try:
            await write_with_conflict_retry(
                self.store, self.plural, record, apply_status, status=True
            )
        except ResourceNotFoundError:
            ctx.logger.debug(f"{self.kind} {record.key} vanished before its status was written")
        except OperatorError as e:
            if propagate:
                raise
            ctx.logger.error(
                f"Failed to write status of {self.kind} {record.key}: {e}",
                error_type=type(e).__name__,
            )
