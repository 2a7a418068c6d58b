"""
Services package - reconciliation engine.

Contains the reconcile loop shared by all resource kinds, its collaborators
(credential resolution, connection management, synchronization pipeline,
finalizer protocol) and one reconciler per kind.
"""

from .base_reconciler import BaseReconciler, RequeueDirective
from .client_reconciler import KeycloakClientReconciler
from .keycloak_reconciler import KeycloakConnectionReconciler
from .realm_reconciler import KeycloakRealmReconciler
from .realm_role_reconciler import KeycloakRealmRoleReconciler

__all__ = [
    "BaseReconciler",
    "KeycloakClientReconciler",
    "KeycloakConnectionReconciler",
    "KeycloakRealmReconciler",
    "KeycloakRealmRoleReconciler",
    "RequeueDirective",
]
