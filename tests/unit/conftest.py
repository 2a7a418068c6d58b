"""Shared pytest fixtures for reconciliation engine tests."""

import asyncio
import copy
from typing import Any
from unittest.mock import DEFAULT, AsyncMock

import pytest

from keycloak_resource_operator.constants import (
    API_GROUP,
    API_VERSION,
    KIND_CLIENT,
    KIND_KEYCLOAK,
    KIND_REALM,
    KIND_REALM_ROLE,
    PLURAL_CLIENT,
    PLURAL_KEYCLOAK,
    PLURAL_REALM,
    PLURAL_REALM_ROLE,
)
from keycloak_resource_operator.errors import ConflictingWriteError, ResourceNotFoundError
from keycloak_resource_operator.models.record import DesiredStateRecord, ObjectKey
from keycloak_resource_operator.observability.logging import OperatorLogger
from keycloak_resource_operator.services.connection import ConnectionManager
from keycloak_resource_operator.services.context import ReconcileContext

NAMESPACE = "test-ns"

IDP_METHODS = (
    "authenticate",
    "exists_realm",
    "create_realm",
    "delete_realm",
    "sync_client",
    "delete_client",
    "exists_client_role",
    "create_client_role",
    "exists_realm_role",
    "create_realm_role",
    "sync_realm_role",
    "delete_realm_role",
)


class InMemoryRecordStore:
    """Record store fake with resourceVersion checks.

    Every write is appended to ``journal`` so tests can assert on the order
    of store writes relative to remote calls sharing the same journal.
    """

    def __init__(self, journal: list[tuple] | None = None):
        self.objects: dict[tuple[str, ObjectKey], dict[str, Any]] = {}
        self.secrets: dict[ObjectKey, dict[str, bytes]] = {}
        self.config_maps: dict[ObjectKey, dict[str, str]] = {}
        self.journal = journal if journal is not None else []
        self.status_writes = 0
        self.update_writes = 0
        self._version = 0

    def _next_version(self) -> str:
        self._version += 1
        return str(self._version)

    def add(self, plural: str, obj: dict[str, Any]) -> DesiredStateRecord:
        obj = copy.deepcopy(obj)
        obj["metadata"]["resourceVersion"] = self._next_version()
        key = ObjectKey(obj["metadata"]["namespace"], obj["metadata"]["name"])
        self.objects[(plural, key)] = obj
        return DesiredStateRecord.from_k8s(copy.deepcopy(obj))

    def raw(self, plural: str, name: str, namespace: str = NAMESPACE) -> dict[str, Any] | None:
        return self.objects.get((plural, ObjectKey(namespace, name)))

    def touch(self, plural: str, name: str, namespace: str = NAMESPACE) -> None:
        """Simulate a concurrent writer bumping the resourceVersion."""
        self.raw(plural, name, namespace)["metadata"]["resourceVersion"] = self._next_version()

    def add_secret(self, name: str, data: dict[str, str], namespace: str = NAMESPACE) -> None:
        self.secrets[ObjectKey(namespace, name)] = {
            k: v.encode("utf-8") for k, v in data.items()
        }

    def add_config_map(self, name: str, data: dict[str, str], namespace: str = NAMESPACE) -> None:
        self.config_maps[ObjectKey(namespace, name)] = dict(data)

    def _current(self, plural: str, record: DesiredStateRecord) -> dict[str, Any]:
        current = self.objects.get((plural, record.key))
        if current is None:
            raise ResourceNotFoundError(plural, str(record.key))
        if current["metadata"]["resourceVersion"] != record.metadata.resource_version:
            raise ConflictingWriteError(plural, str(record.key))
        return current

    async def get(self, plural: str, key: ObjectKey) -> DesiredStateRecord | None:
        obj = self.objects.get((plural, key))
        if obj is None:
            return None
        return DesiredStateRecord.from_k8s(copy.deepcopy(obj))

    async def update(self, plural: str, record: DesiredStateRecord) -> DesiredStateRecord:
        current = self._current(plural, record)
        body = record.to_k8s()
        # Status and deletion marker are not writable through the main resource
        body["status"] = copy.deepcopy(current.get("status"))
        deletion_timestamp = current["metadata"].get("deletionTimestamp")
        if deletion_timestamp:
            body["metadata"]["deletionTimestamp"] = deletion_timestamp
        body["metadata"]["resourceVersion"] = self._next_version()

        self.update_writes += 1
        self.journal.append(("update", plural, record.metadata.name))
        if deletion_timestamp and not body["metadata"].get("finalizers"):
            del self.objects[(plural, record.key)]
        else:
            self.objects[(plural, record.key)] = body
        return DesiredStateRecord.from_k8s(copy.deepcopy(body))

    async def update_status(
        self, plural: str, record: DesiredStateRecord
    ) -> DesiredStateRecord:
        current = self._current(plural, record)
        current["status"] = record.to_k8s().get("status")
        current["metadata"]["resourceVersion"] = self._next_version()

        self.status_writes += 1
        self.journal.append(("update_status", plural, record.metadata.name))
        return DesiredStateRecord.from_k8s(copy.deepcopy(current))

    async def read_secret(self, key: ObjectKey) -> dict[str, bytes] | None:
        return self.secrets.get(key)

    async def read_config_map(self, key: ObjectKey) -> dict[str, str] | None:
        return self.config_maps.get(key)


def make_object(
    kind: str,
    name: str,
    spec: dict[str, Any],
    namespace: str = NAMESPACE,
    status: dict[str, Any] | None = None,
    finalizers: list[str] | None = None,
    terminating: bool = False,
    owner: tuple[str, str] | None = None,
) -> dict[str, Any]:
    """Build a custom object as the API server would return it."""
    metadata: dict[str, Any] = {"name": name, "namespace": namespace}
    if finalizers:
        metadata["finalizers"] = list(finalizers)
    if terminating:
        metadata["deletionTimestamp"] = "2024-01-01T00:00:00Z"
    if owner:
        owner_kind, owner_name = owner
        metadata["ownerReferences"] = [
            {
                "apiVersion": f"{API_GROUP}/{API_VERSION}",
                "kind": owner_kind,
                "name": owner_name,
                "uid": f"{owner_name}-uid",
            }
        ]
    obj: dict[str, Any] = {
        "apiVersion": f"{API_GROUP}/{API_VERSION}",
        "kind": kind,
        "metadata": metadata,
        "spec": spec,
    }
    if status is not None:
        obj["status"] = status
    return obj


def make_idp_client(journal: list[tuple] | None = None) -> AsyncMock:
    """IdentityProviderClient double: nothing exists, every call succeeds."""
    client = AsyncMock()
    for method in IDP_METHODS:
        mock = getattr(client, method)
        if method.startswith("exists_"):
            mock.return_value = False
        else:
            mock.return_value = None
        if journal is not None:
            mock.side_effect = _journaling(journal, method)
    return client


def _journaling(journal: list[tuple], method: str):
    def record(*args, **kwargs):
        journal.append((method, *args))
        # Fall through to return_value so tests can still script results
        return DEFAULT

    return record


@pytest.fixture
def journal() -> list[tuple]:
    return []


@pytest.fixture
def store(journal) -> InMemoryRecordStore:
    return InMemoryRecordStore(journal)


@pytest.fixture
def idp_client(journal) -> AsyncMock:
    return make_idp_client(journal)


@pytest.fixture
def connection_manager(idp_client) -> ConnectionManager:
    return ConnectionManager(client_factory=lambda credential: idp_client)


@pytest.fixture
def ctx() -> ReconcileContext:
    return ReconcileContext(
        logger=OperatorLogger("tests").bind(namespace=NAMESPACE),
        cancel_event=asyncio.Event(),
    )


@pytest.fixture
def keycloak_object() -> dict[str, Any]:
    return make_object(
        KIND_KEYCLOAK,
        "keycloak",
        {"url": "https://keycloak.example.com", "secret": "keycloak-admin"},
        status={"connected": True, "value": "", "failureCount": 0},
    )


@pytest.fixture
def realm_object() -> dict[str, Any]:
    return make_object(
        KIND_REALM,
        "realm",
        {"realmName": "ns.test"},
        owner=(KIND_KEYCLOAK, "keycloak"),
    )


@pytest.fixture
def client_object() -> dict[str, Any]:
    return make_object(
        KIND_CLIENT,
        "client",
        {
            "clientId": "web-app",
            "targetRealm": "ns.test",
            "realmRef": "realm",
            "clientRoles": ["viewer"],
            "realmRoles": [{"name": "role-test", "composite": False}],
        },
    )


@pytest.fixture
def realm_role_object() -> dict[str, Any]:
    return make_object(
        KIND_REALM_ROLE,
        "role",
        {"name": "auditor", "composites": ["viewer"]},
        owner=(KIND_REALM, "realm"),
    )


@pytest.fixture
def populated_store(store, keycloak_object, realm_object) -> InMemoryRecordStore:
    """Store with a connected Keycloak, its admin secret and one realm."""
    store.add(PLURAL_KEYCLOAK, keycloak_object)
    store.add_secret("keycloak-admin", {"username": "admin", "password": "secret"})
    store.add(PLURAL_REALM, realm_object)
    return store


@pytest.fixture
def add_client(populated_store, client_object):
    def _add(**spec_overrides: Any) -> DesiredStateRecord:
        obj = copy.deepcopy(client_object)
        obj["spec"].update(spec_overrides)
        return populated_store.add(PLURAL_CLIENT, obj)

    return _add


@pytest.fixture
def add_realm_role(populated_store, realm_role_object):
    def _add() -> DesiredStateRecord:
        return populated_store.add(PLURAL_REALM_ROLE, realm_role_object)

    return _add
