"""
Keycloak realm reconciler.

Creates the realm named by a ``KeycloakRealm`` record when it does not
exist yet and deletes it when the record is deleted.
"""

from ..constants import KIND_REALM, PLURAL_REALM, REALM_FINALIZER
from ..models.realm import KeycloakRealmSpec
from .base_reconciler import BaseReconciler, ReconcileState, parse_spec
from .context import ReconcileContext
from .pipeline import PipelineStep
from .steps import PutRealm


class KeycloakRealmReconciler(BaseReconciler):
    """Reconciler for KeycloakRealm resources."""

    kind = KIND_REALM
    plural = PLURAL_REALM
    finalizer = REALM_FINALIZER

    async def resolve_owners(
        self, state: ReconcileState, ctx: ReconcileContext
    ) -> None:
        spec = parse_spec(KeycloakRealmSpec, state.record)
        state.spec = spec
        state.realm_name = spec.realm_name
        state.keycloak = await self.resolve_keycloak(
            state.record, spec.keycloak_owner, "keycloakOwner", ctx
        )

    def steps(self) -> list[PipelineStep]:
        return [PutRealm()]

    def entity_name(self, state: ReconcileState) -> str:
        return f"realm {state.realm_name}"

    async def remote_delete(self, state: ReconcileState) -> None:
        await state.client.delete_realm(state.realm_name)
