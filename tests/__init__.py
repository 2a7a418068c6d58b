"""
Tests package - Test suite for the Keycloak resource operator.

Contains:
- unit/: Unit tests for individual components, run against an in-memory
  record store and mocked Keycloak clients
"""
