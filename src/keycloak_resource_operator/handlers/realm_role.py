"""
KeycloakRealmRole handlers - Manages realm role lifecycle.
"""

from typing import Any

import kopf

from keycloak_resource_operator.constants import API_GROUP, API_VERSION, PLURAL_REALM_ROLE
from keycloak_resource_operator.services import KeycloakRealmRoleReconciler

from .shared import run_reconciler


@kopf.on.create(PLURAL_REALM_ROLE, group=API_GROUP, version=API_VERSION)
@kopf.on.resume(PLURAL_REALM_ROLE, group=API_GROUP, version=API_VERSION)
@kopf.on.update(PLURAL_REALM_ROLE, group=API_GROUP, version=API_VERSION)
async def reconcile_keycloak_realm_role(
    name: str, namespace: str, reason: str | None = None, **kwargs: Any
) -> None:
    """Synchronize the realm role and its composites."""
    await run_reconciler(
        KeycloakRealmRoleReconciler(), reason or "reconcile", name, namespace
    )


@kopf.on.delete(PLURAL_REALM_ROLE, group=API_GROUP, version=API_VERSION, optional=True)
async def delete_keycloak_realm_role(name: str, namespace: str, **kwargs: Any) -> None:
    """Delete the realm role from Keycloak and release the finalizer."""
    await run_reconciler(KeycloakRealmRoleReconciler(), "delete", name, namespace)
