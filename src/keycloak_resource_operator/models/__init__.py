"""
Models package - Pydantic models for type-safe resource handling.

Defines data models for:
- The stored desired-state record and its status block
- Keycloak connection, realm, client and realm role specifications
- Keycloak Admin API representations
"""
