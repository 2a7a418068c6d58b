"""Unit tests for ConnectionManager."""

from unittest.mock import AsyncMock

import httpx
import pytest

from keycloak_resource_operator.constants import KIND_REALM
from keycloak_resource_operator.errors import TransientConnectivityError
from keycloak_resource_operator.models.record import DesiredStateRecord
from keycloak_resource_operator.services.connection import (
    ConnectionManager,
    build_admin_client,
)
from keycloak_resource_operator.services.credentials import ConnectionCredential
from keycloak_resource_operator.utils.keycloak_admin import KeycloakAdminClient

from ..conftest import make_object


@pytest.fixture
def credential():
    return ConnectionCredential(
        server_url="https://keycloak.example.com",
        admin_realm="master",
        admin_client_id="admin-cli",
        username="admin",
        password="secret",
    )


@pytest.fixture
def record():
    return DesiredStateRecord.from_k8s(make_object(KIND_REALM, "realm", {"realmName": "r"}))


class TestConnect:
    @pytest.mark.asyncio
    async def test_successful_connection(self, connection_manager, idp_client, credential, ctx):
        result = await connection_manager.connect(credential, ctx)

        assert result.connected is True
        assert result.client is idp_client
        assert result.error is None
        idp_client.authenticate.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failed_connection_never_raises(
        self, connection_manager, idp_client, credential, ctx
    ):
        idp_client.authenticate.side_effect = httpx.ConnectError("connection refused")

        result = await connection_manager.connect(credential, ctx)

        assert result.connected is False
        assert result.client is None
        assert isinstance(result.error, TransientConnectivityError)
        assert "https://keycloak.example.com" in str(result.error)
        idp_client.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_factory_receives_credential(self, credential, ctx):
        client = AsyncMock()
        factory_calls = []

        def factory(cred):
            factory_calls.append(cred)
            return client

        await ConnectionManager(client_factory=factory).connect(credential, ctx)

        assert factory_calls == [credential]

    def test_default_factory_builds_admin_client(self, credential):
        client = build_admin_client(credential)

        assert isinstance(client, KeycloakAdminClient)
        assert client.server_url == "https://keycloak.example.com"
        assert client.username == "admin"
        assert client.admin_realm == "master"


class TestApplyTransition:
    def test_change_is_reported_and_timestamped(self, record):
        manager = ConnectionManager()

        assert manager.apply_transition(record, True) is True
        assert record.status.connected is True
        assert record.status.last_transition is not None

    def test_no_change_leaves_timestamp(self, record):
        manager = ConnectionManager()
        record.status.last_transition = "2024-01-01T00:00:00+00:00"

        assert manager.apply_transition(record, False) is False
        assert record.status.last_transition == "2024-01-01T00:00:00+00:00"
