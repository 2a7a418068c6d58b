"""
Kubernetes utilities for the Keycloak resource operator.

This module provides the record store the reconcilers read from and write
to, built on the official Kubernetes client:
- Kubernetes client configuration (in-cluster or kubeconfig)
- Reading and replacing custom resources and their status subresource
  with resourceVersion-based optimistic concurrency
- Reading secrets and config maps referenced by connection specs
- Re-fetch-and-retry for writes that lose a concurrency race
"""

import asyncio
import base64
import logging
from collections.abc import Callable
from typing import Any, Protocol

from kubernetes import client, config
from kubernetes.client.rest import ApiException

from keycloak_resource_operator.constants import API_GROUP, API_VERSION
from keycloak_resource_operator.errors import (
    ConflictingWriteError,
    KubernetesAPIError,
    OperatorError,
    ResourceNotFoundError,
)
from keycloak_resource_operator.models.record import DesiredStateRecord, ObjectKey
from keycloak_resource_operator.settings import settings

logger = logging.getLogger(__name__)


def get_kubernetes_client() -> client.ApiClient:
    """
    Get configured Kubernetes API client.

    This function handles both in-cluster and local development configurations.

    Returns:
        Configured Kubernetes API client
    """
    try:
        # Try in-cluster config first (when running in a pod)
        config.load_incluster_config()
        logger.debug("Loaded in-cluster Kubernetes configuration")
    except config.ConfigException:
        try:
            # Fall back to local kubeconfig (for development)
            config.load_kube_config()
            logger.debug("Loaded kubeconfig from local environment")
        except config.ConfigException as e:
            logger.error(f"Failed to load Kubernetes configuration: {e}")
            raise

    return client.ApiClient()


class RecordStore(Protocol):
    """Declarative store holding desired-state records and their secrets."""

    async def get(self, plural: str, key: ObjectKey) -> DesiredStateRecord | None:
        """Return the current record, or None when it does not exist."""
        ...

    async def update(
        self, plural: str, record: DesiredStateRecord
    ) -> DesiredStateRecord:
        """Replace metadata and spec; raises ConflictingWriteError on a stale version."""
        ...

    async def update_status(
        self, plural: str, record: DesiredStateRecord
    ) -> DesiredStateRecord:
        """Replace the status subresource; raises ConflictingWriteError on a stale version."""
        ...

    async def read_secret(self, key: ObjectKey) -> dict[str, bytes] | None:
        """Return decoded secret data, or None when the secret does not exist."""
        ...

    async def read_config_map(self, key: ObjectKey) -> dict[str, str] | None:
        """Return config map data, or None when the config map does not exist."""
        ...


def translate_api_exception(
    e: ApiException, kind: str, key: ObjectKey
) -> OperatorError:
    """Map a Kubernetes API failure onto the operator error taxonomy."""
    if e.status == 404:
        return ResourceNotFoundError(kind, str(key))
    if e.status == 409:
        return ConflictingWriteError(kind, str(key))
    http_status = getattr(e, "status", None)
    return KubernetesAPIError(
        message=f"request for {kind} {key} failed: HTTP {http_status}",
        reason=getattr(e, "reason", None),
        retryable=http_status is None or http_status >= 500,
    )


class KubernetesRecordStore:
    """
    Record store backed by the Kubernetes API.

    The Kubernetes client is synchronous, so every call runs in a worker
    thread to keep the kopf event loop responsive.
    """

    def __init__(self, k8s_client: client.ApiClient | None = None):
        self.k8s_client = k8s_client

    @property
    def kubernetes_client(self) -> client.ApiClient:
        """Get or create Kubernetes API client."""
        if self.k8s_client is None:
            self.k8s_client = get_kubernetes_client()
        return self.k8s_client

    @property
    def custom_api(self) -> client.CustomObjectsApi:
        return client.CustomObjectsApi(self.kubernetes_client)

    @property
    def core_api(self) -> client.CoreV1Api:
        return client.CoreV1Api(self.kubernetes_client)

    async def get(self, plural: str, key: ObjectKey) -> DesiredStateRecord | None:
        try:
            obj = await asyncio.to_thread(
                self.custom_api.get_namespaced_custom_object,
                group=API_GROUP,
                version=API_VERSION,
                namespace=key.namespace,
                plural=plural,
                name=key.name,
            )
        except ApiException as e:
            if e.status == 404:
                return None
            raise translate_api_exception(e, plural, key) from e
        return DesiredStateRecord.from_k8s(obj)

    async def update(
        self, plural: str, record: DesiredStateRecord
    ) -> DesiredStateRecord:
        try:
            obj = await asyncio.to_thread(
                self.custom_api.replace_namespaced_custom_object,
                group=API_GROUP,
                version=API_VERSION,
                namespace=record.metadata.namespace,
                plural=plural,
                name=record.metadata.name,
                body=record.to_k8s(),
            )
        except ApiException as e:
            raise translate_api_exception(e, plural, record.key) from e
        return DesiredStateRecord.from_k8s(obj)

    async def update_status(
        self, plural: str, record: DesiredStateRecord
    ) -> DesiredStateRecord:
        try:
            obj = await asyncio.to_thread(
                self.custom_api.replace_namespaced_custom_object_status,
                group=API_GROUP,
                version=API_VERSION,
                namespace=record.metadata.namespace,
                plural=plural,
                name=record.metadata.name,
                body=record.to_k8s(),
            )
        except ApiException as e:
            raise translate_api_exception(e, f"{plural}/status", record.key) from e
        return DesiredStateRecord.from_k8s(obj)

    async def read_secret(self, key: ObjectKey) -> dict[str, bytes] | None:
        try:
            secret = await asyncio.to_thread(
                self.core_api.read_namespaced_secret,
                name=key.name,
                namespace=key.namespace,
            )
        except ApiException as e:
            if e.status == 404:
                return None
            raise translate_api_exception(e, "secret", key) from e
        return {k: base64.b64decode(v) for k, v in (secret.data or {}).items()}

    async def read_config_map(self, key: ObjectKey) -> dict[str, str] | None:
        try:
            config_map = await asyncio.to_thread(
                self.core_api.read_namespaced_config_map,
                name=key.name,
                namespace=key.namespace,
            )
        except ApiException as e:
            if e.status == 404:
                return None
            raise translate_api_exception(e, "configmap", key) from e
        return dict(config_map.data or {})


async def write_with_conflict_retry(
    store: RecordStore,
    plural: str,
    record: DesiredStateRecord,
    mutate: Callable[[DesiredStateRecord], Any],
    status: bool = False,
    attempts: int | None = None,
) -> DesiredStateRecord:
    """
    Apply ``mutate`` to ``record`` and persist it, re-reading on conflicts.

    A write that loses an optimistic-concurrency race is not retried blindly:
    the latest version is fetched, the same mutation is applied to it and the
    write is attempted again, up to ``attempts`` times.

    Args:
        store: Record store to write to
        plural: Resource plural of the record
        record: Record to mutate and write
        mutate: Idempotent in-place mutation (adds a finalizer, sets status, ...)
        status: Write the status subresource instead of metadata/spec
        attempts: Maximum number of writes (defaults to settings)

    Returns:
        The record as stored by the server

    Raises:
        ConflictingWriteError: If every attempt conflicted
        ResourceNotFoundError: If the record disappeared in between
    """
    attempts = attempts or settings.conflict_retry_attempts
    current = record
    mutate(current)

    for attempt in range(1, attempts + 1):
        try:
            if status:
                return await store.update_status(plural, current)
            return await store.update(plural, current)
        except ConflictingWriteError:
            if attempt >= attempts:
                raise
            logger.info(
                f"Write conflict on {plural} {record.key}, re-reading (attempt {attempt}/{attempts})"
            )
            latest = await store.get(plural, record.key)
            if latest is None:
                raise ResourceNotFoundError(plural, str(record.key)) from None
            mutate(latest)
            current = latest

    # attempts < 1
    raise ConflictingWriteError(plural, str(record.key))
