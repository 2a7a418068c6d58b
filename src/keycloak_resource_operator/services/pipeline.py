"""
Synchronization pipeline.

A pipeline is a statically ordered list of steps. Each step brings one
aspect of the remote state in line with the record; the first failing step
stops the pipeline and the remaining steps are skipped until the next
reconciliation.
"""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TypeVar

from pydantic import BaseModel

from keycloak_resource_operator.errors import RemoteOperationError, SyncStepError
from keycloak_resource_operator.models.record import DesiredStateRecord
from keycloak_resource_operator.observability.metrics import metrics_collector
from keycloak_resource_operator.utils.keycloak_admin import IdentityProviderClient

from .context import ReconcileContext

T = TypeVar("T")


class SyncPolicy(str, Enum):
    """How a step treats a remote entity that already exists."""

    # Create when missing, never touch an existing entity
    CREATE_IF_ABSENT = "create-if-absent"
    # Create when missing, overwrite managed attributes otherwise
    ALWAYS_SYNCHRONIZE = "always-synchronize"


@dataclass
class SyncRequest:
    """Input shared by all steps of one pipeline run."""

    record: DesiredStateRecord
    spec: BaseModel
    realm_name: str


async def remote_call(
    ctx: ReconcileContext,
    operation: str,
    entity: str,
    call: Callable[[], Awaitable[T]],
) -> T:
    """
    Issue one Keycloak call, wrapping failures as ``RemoteOperationError``.

    Args:
        ctx: Reconcile context (checked for cancellation first)
        operation: Client operation name, e.g. ``create_realm``
        entity: Natural key of the remote entity, e.g. ``realm foo``
        call: Zero-argument callable starting the request
    """
    ctx.checkpoint()
    try:
        result = await call()
    except Exception as e:
        metrics_collector.record_remote_operation(operation, success=False)
        raise RemoteOperationError(operation, entity, e) from e
    metrics_collector.record_remote_operation(operation, success=True)
    return result


class PipelineStep(ABC):
    """One idempotent unit of synchronization."""

    name: str
    description: str
    policy: SyncPolicy

    @abstractmethod
    async def apply(
        self,
        request: SyncRequest,
        client: IdentityProviderClient,
        ctx: ReconcileContext,
    ) -> None:
        """Bring the remote entity handled by this step in line with the request."""

    def __repr__(self) -> str:
        return f"{self.name}({self.policy.value})"


class SyncPipeline:
    """Runs steps in order and stops at the first failure."""

    def __init__(self, steps: Sequence[PipelineStep]):
        self.steps = list(steps)

    async def run(
        self,
        request: SyncRequest,
        client: IdentityProviderClient,
        ctx: ReconcileContext,
    ) -> None:
        """
        Run every step against ``client``.

        Raises:
            SyncStepError: Wrapping the first step failure; later steps are skipped
        """
        for step in self.steps:
            ctx.checkpoint()
            ctx.logger.debug(
                f"Running step {step.name}",
                step=step.name,
                policy=step.policy.value,
                realm_name=request.realm_name,
            )
            try:
                await step.apply(request, client, ctx)
            except Exception as e:
                ctx.logger.warning(
                    f"Step {step.name} failed: {e}",
                    step=step.name,
                    error_type=type(e).__name__,
                )
                raise SyncStepError(step.name, step.description, e) from e
