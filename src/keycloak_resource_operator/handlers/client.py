"""
KeycloakClient handlers - Manages client lifecycle.

Clients are synchronized into their target realm together with the client
roles and realm roles they list.
"""

from typing import Any

import kopf

from keycloak_resource_operator.constants import API_GROUP, API_VERSION, PLURAL_CLIENT
from keycloak_resource_operator.services import KeycloakClientReconciler

from .shared import run_reconciler


@kopf.on.create(PLURAL_CLIENT, group=API_GROUP, version=API_VERSION)
@kopf.on.resume(PLURAL_CLIENT, group=API_GROUP, version=API_VERSION)
@kopf.on.update(PLURAL_CLIENT, group=API_GROUP, version=API_VERSION)
async def reconcile_keycloak_client(
    name: str, namespace: str, reason: str | None = None, **kwargs: Any
) -> None:
    """Synchronize the client and its roles."""
    await run_reconciler(KeycloakClientReconciler(), reason or "reconcile", name, namespace)


@kopf.on.delete(PLURAL_CLIENT, group=API_GROUP, version=API_VERSION, optional=True)
async def delete_keycloak_client(name: str, namespace: str, **kwargs: Any) -> None:
    """Delete the client from Keycloak and release the finalizer."""
    await run_reconciler(KeycloakClientReconciler(), "delete", name, namespace)
