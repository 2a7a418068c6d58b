"""
Keycloak handlers - Tracks connectivity of Keycloak connection resources.

A Keycloak resource points at an existing Keycloak server. Its handlers
probe the server and publish ``status.connected`` so that realms, clients
and roles only talk to a server that answered.
"""

from typing import Any

import kopf

from keycloak_resource_operator.constants import API_GROUP, API_VERSION, PLURAL_KEYCLOAK
from keycloak_resource_operator.services import KeycloakConnectionReconciler

from .shared import run_reconciler


@kopf.on.create(PLURAL_KEYCLOAK, group=API_GROUP, version=API_VERSION)
@kopf.on.resume(PLURAL_KEYCLOAK, group=API_GROUP, version=API_VERSION)
@kopf.on.update(PLURAL_KEYCLOAK, group=API_GROUP, version=API_VERSION)
async def reconcile_keycloak(
    name: str, namespace: str, reason: str | None = None, **kwargs: Any
) -> None:
    """Probe the Keycloak server and record whether it is reachable."""
    await run_reconciler(
        KeycloakConnectionReconciler(), reason or "reconcile", name, namespace
    )
