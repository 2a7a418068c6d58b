"""
Keycloak client reconciler.

Synchronizes the OpenID Connect client of a ``KeycloakClient`` record and
makes sure the client roles and realm roles it lists exist.
"""

from ..constants import CLIENT_FINALIZER, KIND_CLIENT, KIND_REALM, PLURAL_CLIENT, PLURAL_REALM
from ..models.client import KeycloakClientSpec
from ..models.realm import KeycloakRealmSpec
from .base_reconciler import BaseReconciler, ReconcileState, parse_spec
from .context import ReconcileContext
from .pipeline import PipelineStep
from .steps import PutClient, PutClientRoles, PutRealmRoles


class KeycloakClientReconciler(BaseReconciler):
    """Reconciler for KeycloakClient resources."""

    kind = KIND_CLIENT
    plural = PLURAL_CLIENT
    finalizer = CLIENT_FINALIZER

    async def resolve_owners(
        self, state: ReconcileState, ctx: ReconcileContext
    ) -> None:
        spec = parse_spec(KeycloakClientSpec, state.record)
        state.spec = spec

        realm = await self.resolve_parent(
            state.record, KIND_REALM, PLURAL_REALM, spec.realm_ref, "realmRef", ctx
        )
        realm_spec = parse_spec(KeycloakRealmSpec, realm)
        state.realm = realm
        state.realm_name = spec.target_realm or realm_spec.realm_name
        state.keycloak = await self.resolve_keycloak(
            realm, realm_spec.keycloak_owner, "keycloakOwner", ctx
        )

    def steps(self) -> list[PipelineStep]:
        return [PutClient(), PutClientRoles(), PutRealmRoles()]

    def entity_name(self, state: ReconcileState) -> str:
        return f"client {state.realm_name}/{state.spec.client_id}"

    async def remote_delete(self, state: ReconcileState) -> None:
        await state.client.delete_client(state.realm_name, state.spec.client_id)
