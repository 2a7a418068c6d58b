"""
Constants used throughout the Keycloak resource operator.

This module defines all constant values used by the operator including:
- API group, version and resource names of the managed custom resources
- Finalizer names for cleanup coordination
- Secret and config map keys read during credential resolution
- Default connection values
"""

import logging
import os

# Custom resource coordinates
API_GROUP = "keycloak.mdvr.nl"
API_VERSION = "v1"

KIND_KEYCLOAK = "Keycloak"
KIND_REALM = "KeycloakRealm"
KIND_CLIENT = "KeycloakClient"
KIND_REALM_ROLE = "KeycloakRealmRole"

PLURAL_KEYCLOAK = "keycloaks"
PLURAL_REALM = "keycloakrealms"
PLURAL_CLIENT = "keycloakclients"
PLURAL_REALM_ROLE = "keycloakrealmroles"

# Finalizer constants for cleanup coordination
# These prevent Kubernetes from deleting resources until Keycloak cleanup is complete
REALM_FINALIZER = "keycloak.mdvr.nl/realm-cleanup"
CLIENT_FINALIZER = "keycloak.mdvr.nl/client-cleanup"
REALM_ROLE_FINALIZER = "keycloak.mdvr.nl/realm-role-cleanup"

# Keys read from credential secrets and CA sources
SECRET_USERNAME_KEY = "username"
SECRET_PASSWORD_KEY = "password"
SECRET_TOKEN_KEY = "token"
CA_CERTIFICATE_KEY = "ca.crt"

# Keycloak admin defaults
DEFAULT_ADMIN_REALM = "master"
DEFAULT_ADMIN_CLIENT_ID = "admin-cli"
MASTER_REALM = "master"

# Fixed revisit period for a Keycloak that cannot be reached (seconds)
DEFAULT_CONNECTION_RETRY_PERIOD = 10

# Status value used when everything is in sync
STATUS_OK = ""

# Log level for handler entry logs (DEBUG in noisy production clusters)
HANDLER_ENTRY_LOG_LEVEL = getattr(
    logging, os.getenv("HANDLER_ENTRY_LOG_LEVEL", "INFO").upper(), logging.INFO
)
