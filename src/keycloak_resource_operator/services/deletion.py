"""
Finalizer protocol.

A finalizer on a record keeps it in the cluster until the remote entity it
owns has been deleted. The finalizer is added, and durably stored, before
any remote entity is created; it is removed only after the remote delete
succeeded.
"""

from collections.abc import Awaitable, Callable

from keycloak_resource_operator.models.record import DesiredStateRecord
from keycloak_resource_operator.utils.kubernetes import (
    RecordStore,
    write_with_conflict_retry,
)

from .context import ReconcileContext
from .pipeline import remote_call


class DeletionProtocol:
    """Adds and removes one finalizer around the life of a record."""

    def __init__(self, store: RecordStore, finalizer: str):
        self.store = store
        self.finalizer = finalizer

    def _add_finalizer(self, record: DesiredStateRecord) -> None:
        # A record that is already being deleted must not regain the finalizer
        if record.is_terminating or record.has_finalizer(self.finalizer):
            return
        record.metadata.finalizers.append(self.finalizer)

    def _remove_finalizer(self, record: DesiredStateRecord) -> None:
        record.metadata.finalizers = [
            f for f in record.metadata.finalizers if f != self.finalizer
        ]

    async def _persist(
        self,
        plural: str,
        record: DesiredStateRecord,
        mutate: Callable[[DesiredStateRecord], None],
    ) -> None:
        stored = await write_with_conflict_retry(self.store, plural, record, mutate)
        record.metadata.resource_version = stored.metadata.resource_version
        record.metadata.finalizers = list(stored.metadata.finalizers)
        # A concurrent delete may have marked the record while we retried
        record.metadata.deletion_timestamp = stored.metadata.deletion_timestamp

    async def try_delete(
        self,
        plural: str,
        record: DesiredStateRecord,
        remote_delete: Callable[[], Awaitable[None]],
        ctx: ReconcileContext,
        entity: str | None = None,
    ) -> bool:
        """
        Drive the finalizer protocol for one record.

        Args:
            plural: Resource plural of the record
            record: The record; its metadata is updated with what was stored
            remote_delete: Deletes the owned remote entity (404 counts as success)
            ctx: Reconcile context
            entity: Natural key of the remote entity, for errors and logs

        Returns:
            True when the record was finalized, False when it is still active

        Raises:
            RemoteOperationError: The remote delete failed; the finalizer is kept
        """
        if not record.is_terminating:
            if record.has_finalizer(self.finalizer):
                return False
            ctx.checkpoint()
            await self._persist(plural, record, self._add_finalizer)
            if record.has_finalizer(self.finalizer):
                ctx.logger.info(
                    f"Added finalizer {self.finalizer}", finalizer=self.finalizer
                )
            return False

        entity = entity or f"{record.kind} {record.key}"
        ctx.logger.info(f"Deleting {entity} from Keycloak", entity=entity)
        await remote_call(ctx, "delete", entity, remote_delete)

        if record.has_finalizer(self.finalizer):
            ctx.checkpoint()
            await self._persist(plural, record, self._remove_finalizer)
            ctx.logger.info(
                f"Removed finalizer {self.finalizer}", finalizer=self.finalizer
            )
        return True
