"""
Error handling module for the Keycloak resource operator.

This module provides a comprehensive error hierarchy that integrates with kopf
and provides clear categorization for different types of failures.
"""

from .operator_errors import (
    ConfigurationError,
    ConflictingWriteError,
    CredentialError,
    CredentialInvalidError,
    CredentialNotFoundError,
    ExternalServiceError,
    KubernetesAPIError,
    OperatorError,
    OwnerUnresolvedError,
    PermanentError,
    ReconciliationError,
    RemoteOperationError,
    ResourceNotFoundError,
    SyncStepError,
    TemporaryError,
    TransientConnectivityError,
    ValidationError,
)

__all__ = [
    "OperatorError",
    "ValidationError",
    "TemporaryError",
    "PermanentError",
    "ExternalServiceError",
    "KubernetesAPIError",
    "ConfigurationError",
    "ReconciliationError",
    "ResourceNotFoundError",
    "ConflictingWriteError",
    "TransientConnectivityError",
    "RemoteOperationError",
    "SyncStepError",
    "OwnerUnresolvedError",
    "CredentialError",
    "CredentialNotFoundError",
    "CredentialInvalidError",
]
