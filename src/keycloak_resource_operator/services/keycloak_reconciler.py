"""
Keycloak connection reconciler.

A ``Keycloak`` record owns no remote entity. Reconciling it means resolving
its credentials, probing the server and recording whether it is reachable,
which realms, clients and roles below it require before they do anything.
"""

from ..constants import KIND_KEYCLOAK, PLURAL_KEYCLOAK
from ..models.keycloak import KeycloakSpec
from .base_reconciler import BaseReconciler, ReconcileState, RequeueDirective, parse_spec
from .context import ReconcileContext


class KeycloakConnectionReconciler(BaseReconciler):
    """Keeps ``status.connected`` of Keycloak records up to date."""

    kind = KIND_KEYCLOAK
    plural = PLURAL_KEYCLOAK

    async def resolve_owners(
        self, state: ReconcileState, ctx: ReconcileContext
    ) -> None:
        state.spec = parse_spec(KeycloakSpec, state.record)
        state.keycloak = state.record

    async def synchronize(
        self, state: ReconcileState, ctx: ReconcileContext
    ) -> RequeueDirective:
        # Nothing remote to create or delete; the probe was the whole job
        return RequeueDirective()
