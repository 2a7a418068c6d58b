"""
Keycloak Resource Operator - reconciles Keycloak realms, clients and roles.

This operator keeps Keycloak in line with declarative custom resources:
- Connection health tracking for Keycloak instances
- Realm, client and realm role synchronization
- Finalizer-guarded remote cleanup on deletion
- Observable status with failure-aware retry backoff
"""

__version__ = "0.1.0"
