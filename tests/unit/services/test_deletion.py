"""Unit tests for the finalizer protocol."""

from unittest.mock import AsyncMock

import pytest

from keycloak_resource_operator.constants import KIND_REALM, PLURAL_REALM, REALM_FINALIZER
from keycloak_resource_operator.errors import RemoteOperationError
from keycloak_resource_operator.services.deletion import DeletionProtocol

from ..conftest import make_object


@pytest.fixture
def protocol(store):
    return DeletionProtocol(store, REALM_FINALIZER)


def add_realm(store, **kwargs):
    return store.add(PLURAL_REALM, make_object(KIND_REALM, "realm", {"realmName": "r"}, **kwargs))


class TestActiveRecord:
    @pytest.mark.asyncio
    async def test_adds_finalizer_and_returns_false(self, protocol, store, ctx):
        record = add_realm(store)
        remote_delete = AsyncMock()

        finalized = await protocol.try_delete(PLURAL_REALM, record, remote_delete, ctx)

        assert finalized is False
        remote_delete.assert_not_awaited()
        assert store.raw(PLURAL_REALM, "realm")["metadata"]["finalizers"] == [REALM_FINALIZER]
        # In-memory record follows the stored version
        assert record.metadata.resource_version == store.raw(PLURAL_REALM, "realm")[
            "metadata"
        ]["resourceVersion"]

    @pytest.mark.asyncio
    async def test_existing_finalizer_needs_no_write(self, protocol, store, ctx):
        record = add_realm(store, finalizers=[REALM_FINALIZER])

        assert await protocol.try_delete(PLURAL_REALM, record, AsyncMock(), ctx) is False
        assert store.update_writes == 0

    @pytest.mark.asyncio
    async def test_other_finalizers_are_kept(self, protocol, store, ctx):
        record = add_realm(store, finalizers=["example.com/other"])

        await protocol.try_delete(PLURAL_REALM, record, AsyncMock(), ctx)

        assert store.raw(PLURAL_REALM, "realm")["metadata"]["finalizers"] == [
            "example.com/other",
            REALM_FINALIZER,
        ]


class TestTerminatingRecord:
    @pytest.mark.asyncio
    async def test_successful_delete_finalizes(self, protocol, store, ctx):
        record = add_realm(store, finalizers=[REALM_FINALIZER], terminating=True)
        remote_delete = AsyncMock()

        finalized = await protocol.try_delete(PLURAL_REALM, record, remote_delete, ctx)

        assert finalized is True
        remote_delete.assert_awaited_once()
        assert store.raw(PLURAL_REALM, "realm") is None

    @pytest.mark.asyncio
    async def test_failed_delete_keeps_finalizer(self, protocol, store, ctx):
        record = add_realm(store, finalizers=[REALM_FINALIZER], terminating=True)
        remote_delete = AsyncMock(side_effect=RuntimeError("HTTP 503"))

        with pytest.raises(RemoteOperationError) as exc_info:
            await protocol.try_delete(
                PLURAL_REALM, record, remote_delete, ctx, entity="realm r"
            )

        assert "error during delete for realm r: HTTP 503" in str(exc_info.value)
        assert store.raw(PLURAL_REALM, "realm")["metadata"]["finalizers"] == [
            REALM_FINALIZER
        ]
        assert store.update_writes == 0

    @pytest.mark.asyncio
    async def test_remote_delete_runs_without_finalizer(self, protocol, store, ctx):
        record = add_realm(store, finalizers=["example.com/other"], terminating=True)
        remote_delete = AsyncMock()

        finalized = await protocol.try_delete(PLURAL_REALM, record, remote_delete, ctx)

        assert finalized is True
        remote_delete.assert_awaited_once()
        assert store.update_writes == 0

    def test_terminating_record_never_regains_finalizer(self, protocol, store):
        record = add_realm(store, terminating=True)

        protocol._add_finalizer(record)

        assert record.metadata.finalizers == []
