"""
Utilities package - Kubernetes record store and Keycloak Admin API client.
"""
