"""
Keycloak realm role reconciler.
"""

from ..constants import (
    KIND_REALM,
    KIND_REALM_ROLE,
    PLURAL_REALM,
    PLURAL_REALM_ROLE,
    REALM_ROLE_FINALIZER,
)
from ..models.realm import KeycloakRealmSpec
from ..models.realm_role import KeycloakRealmRoleSpec
from .base_reconciler import BaseReconciler, ReconcileState, parse_spec
from .context import ReconcileContext
from .pipeline import PipelineStep
from .steps import PutPrimaryRealmRole


class KeycloakRealmRoleReconciler(BaseReconciler):
    """Reconciler for KeycloakRealmRole resources."""

    kind = KIND_REALM_ROLE
    plural = PLURAL_REALM_ROLE
    finalizer = REALM_ROLE_FINALIZER

    async def resolve_owners(
        self, state: ReconcileState, ctx: ReconcileContext
    ) -> None:
        spec = parse_spec(KeycloakRealmRoleSpec, state.record)
        state.spec = spec

        realm = await self.resolve_parent(
            state.record, KIND_REALM, PLURAL_REALM, spec.realm_ref, "realmRef", ctx
        )
        realm_spec = parse_spec(KeycloakRealmSpec, realm)
        state.realm = realm
        state.realm_name = realm_spec.realm_name
        state.keycloak = await self.resolve_keycloak(
            realm, realm_spec.keycloak_owner, "keycloakOwner", ctx
        )

    def steps(self) -> list[PipelineStep]:
        return [PutPrimaryRealmRole()]

    def entity_name(self, state: ReconcileState) -> str:
        return f"realm role {state.realm_name}/{state.spec.name}"

    async def remote_delete(self, state: ReconcileState) -> None:
        await state.client.delete_realm_role(state.realm_name, state.spec.name)
