"""
KeycloakRealm handlers - Manages realm lifecycle.

Realms are created in the Keycloak server of the owning Keycloak resource
and deleted again, behind a finalizer, when the resource is deleted.
"""

from typing import Any

import kopf

from keycloak_resource_operator.constants import API_GROUP, API_VERSION, PLURAL_REALM
from keycloak_resource_operator.services import KeycloakRealmReconciler

from .shared import run_reconciler


@kopf.on.create(PLURAL_REALM, group=API_GROUP, version=API_VERSION)
@kopf.on.resume(PLURAL_REALM, group=API_GROUP, version=API_VERSION)
@kopf.on.update(PLURAL_REALM, group=API_GROUP, version=API_VERSION)
async def reconcile_keycloak_realm(
    name: str, namespace: str, reason: str | None = None, **kwargs: Any
) -> None:
    """Ensure the realm exists in Keycloak."""
    await run_reconciler(KeycloakRealmReconciler(), reason or "reconcile", name, namespace)


@kopf.on.delete(PLURAL_REALM, group=API_GROUP, version=API_VERSION, optional=True)
async def delete_keycloak_realm(name: str, namespace: str, **kwargs: Any) -> None:
    """
    Delete the realm from Keycloak and release the finalizer.

    The realm finalizer, not kopf's, keeps the resource until this succeeds.
    """
    await run_reconciler(KeycloakRealmReconciler(), "delete", name, namespace)
