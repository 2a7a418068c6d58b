"""
Handlers package - Contains all Kopf event handlers for Keycloak resources.

This package organizes handlers by resource type:
- keycloak.py: Keycloak connection resources
- realm.py: KeycloakRealm resources
- client.py: KeycloakClient resources
- realm_role.py: KeycloakRealmRole resources
"""
