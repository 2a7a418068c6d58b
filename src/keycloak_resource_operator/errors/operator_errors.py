"""
Operator error hierarchy with categorization and retry logic.

This module defines the error types used throughout the Keycloak resource
operator, providing clear categorization and integration with kopf's retry
mechanisms.
"""

import kopf


class OperatorError(Exception):
    """
    Base error class for all operator-related exceptions.

    Provides categorization, retry behavior, and user guidance for resolution.
    """

    def __init__(
        self,
        message: str,
        category: str,
        retryable: bool = True,
        delay: int = 30,
        user_action: str | None = None,
        cause: Exception | None = None,
    ):
        """
        Initialize operator error.

        Args:
            message: Human-readable error description
            category: Error category (validation, api, configuration, external)
            retryable: Whether kopf should retry this operation
            delay: Suggested retry delay in seconds
            user_action: What user should do to resolve the issue
            cause: Underlying exception that caused this error
        """
        super().__init__(message)
        self.category = category
        self.retryable = retryable
        self.delay = delay
        self.user_action = user_action
        self.cause = cause

    def as_kopf_error(self):
        """Convert to appropriate kopf exception type."""
        if self.retryable:
            return kopf.TemporaryError(str(self), delay=self.delay)
        else:
            return kopf.PermanentError(str(self))

    def __str__(self) -> str:
        """Enhanced string representation with user guidance."""
        base_msg = super().__str__()
        if self.user_action:
            return f"{base_msg}\nAction required: {self.user_action}"
        return base_msg


class ValidationError(OperatorError):
    """Error in resource specification validation."""

    def __init__(
        self, message: str, field: str | None = None, user_action: str | None = None
    ):
        action = user_action or "Check resource specification and fix validation errors"
        if field:
            message = f"Validation error in field '{field}': {message}"
        super().__init__(
            message=message, category="validation", retryable=False, user_action=action
        )


class TemporaryError(OperatorError):
    """Temporary error that should be retried."""

    def __init__(self, message: str, delay: int = 30, user_action: str | None = None):
        super().__init__(
            message=message,
            category="temporary",
            retryable=True,
            delay=delay,
            user_action=user_action
            or "Wait for automatic retry or check system status",
        )


class PermanentError(OperatorError):
    """Permanent error that should not be retried."""

    def __init__(self, message: str, user_action: str | None = None):
        super().__init__(
            message=message,
            category="permanent",
            retryable=False,
            user_action=user_action or "Manual intervention required to resolve",
        )


class ExternalServiceError(OperatorError):
    """Error communicating with external services."""

    def __init__(
        self,
        service: str,
        message: str,
        retryable: bool = True,
        delay: int = 60,
        user_action: str | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(
            message=f"{service} error: {message}",
            category="external",
            retryable=retryable,
            delay=delay,
            user_action=user_action,
            cause=cause,
        )


class ReconciliationError(OperatorError):
    """Error raised when reconciliation cannot be completed."""

    def __init__(
        self,
        message: str,
        retryable: bool = True,
        delay: int = 60,
        user_action: str | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(
            message=message,
            category="reconciliation",
            retryable=retryable,
            delay=delay,
            user_action=user_action,
            cause=cause,
        )


class ConfigurationError(OperatorError):
    """Error in operator or resource configuration."""

    def __init__(
        self,
        message: str,
        retryable: bool = False,
        delay: int = 30,
        user_action: str | None = None,
    ):
        super().__init__(
            message=message,
            category="configuration",
            retryable=retryable,
            delay=delay,
            user_action=user_action or "Review and correct configuration",
        )


class KubernetesAPIError(ExternalServiceError):
    """Error communicating with Kubernetes API."""

    def __init__(self, message: str, reason: str | None = None, retryable: bool = True):
        if reason:
            message = f"{message} (reason: {reason})"

        # Some K8s errors are not retryable
        non_retryable_reasons = {"Forbidden", "Unauthorized", "Invalid"}
        if reason in non_retryable_reasons:
            retryable = False

        super().__init__(
            service="Kubernetes API",
            message=message,
            retryable=retryable,
            user_action="Check RBAC permissions and cluster connectivity",
        )


class ResourceNotFoundError(OperatorError):
    """The record disappeared from the cluster while it was being processed."""

    def __init__(self, kind: str, key: str):
        super().__init__(
            message=f"{kind} {key} not found",
            category="not_found",
            retryable=False,
        )
        self.kind = kind
        self.key = key


class ConflictingWriteError(TemporaryError):
    """A write lost an optimistic-concurrency race (HTTP 409)."""

    def __init__(self, kind: str, key: str, delay: int = 1):
        super().__init__(
            message=f"Conflicting write on {kind} {key}: resource was modified concurrently",
            delay=delay,
            user_action="None; the resource is re-read and the change re-applied",
        )
        self.kind = kind
        self.key = key


class TransientConnectivityError(ExternalServiceError):
    """Keycloak could not be reached or refused the admin credentials."""

    def __init__(self, server_url: str, cause: Exception):
        super().__init__(
            service="Keycloak",
            message=f"unable to connect to {server_url}: {cause}",
            retryable=True,
            delay=10,
            user_action="Check Keycloak availability and admin credentials",
            cause=cause,
        )
        self.server_url = server_url


class RemoteOperationError(ExternalServiceError):
    """A create, synchronize or delete call against Keycloak failed."""

    def __init__(self, operation: str, entity: str, cause: Exception):
        super().__init__(
            service="Keycloak",
            message=f"error during {operation} for {entity}: {cause}",
            retryable=True,
            cause=cause,
        )
        self.operation = operation
        self.entity = entity


class SyncStepError(ReconciliationError):
    """A synchronization pipeline step failed; remaining steps were skipped."""

    def __init__(self, step: str, description: str, cause: Exception):
        super().__init__(
            message=f"{description}: {cause}",
            retryable=True,
            cause=cause,
        )
        self.step = step


class OwnerUnresolvedError(ReconciliationError):
    """The parent resource is missing, unnamed, or not connected to Keycloak."""

    def __init__(self, message: str, delay: int = 30):
        super().__init__(
            message=message,
            retryable=True,
            delay=delay,
            user_action="Check that the referenced parent resource exists and is connected",
        )


class CredentialError(ConfigurationError):
    """Base class for failures while resolving Keycloak connection credentials."""

    def __init__(self, message: str, user_action: str | None = None):
        super().__init__(
            message=message, retryable=True, delay=60, user_action=user_action
        )


class CredentialNotFoundError(CredentialError):
    """A referenced secret or config map does not exist."""

    def __init__(self, object_kind: str, namespace: str, name: str):
        super().__init__(
            message=f"{object_kind} {namespace}/{name} not found",
            user_action=f"Create {object_kind} '{name}' in namespace '{namespace}'",
        )
        self.object_kind = object_kind


class CredentialInvalidError(CredentialError):
    """A referenced object exists but lacks a required field."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            user_action="Add the missing key to the referenced secret or config map",
        )
