"""
Keycloak connection management.

The connection manager opens an admin session from a resolved credential
and reports whether Keycloak is reachable. Connectivity problems are an
expected state, not an error: they are captured in the result and the
caller decides when to look again.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

from keycloak_resource_operator.errors import TransientConnectivityError
from keycloak_resource_operator.models.record import DesiredStateRecord
from keycloak_resource_operator.observability.metrics import metrics_collector
from keycloak_resource_operator.settings import settings
from keycloak_resource_operator.utils.keycloak_admin import (
    IdentityProviderClient,
    KeycloakAdminClient,
)

from .context import ReconcileContext
from .credentials import ConnectionCredential

ClientFactory = Callable[[ConnectionCredential], IdentityProviderClient]


def build_admin_client(credential: ConnectionCredential) -> IdentityProviderClient:
    """Default factory: a Keycloak Admin API client for the credential."""
    return KeycloakAdminClient(
        server_url=credential.server_url,
        username=credential.username,
        password=credential.password,
        token=credential.token,
        realm=credential.admin_realm,
        client_id=credential.admin_client_id,
        ca_certificate=credential.ca_certificate,
        timeout=settings.keycloak_request_timeout_seconds,
    )


@dataclass
class ConnectionResult:
    """Outcome of a connection attempt."""

    client: IdentityProviderClient | None
    connected: bool
    error: TransientConnectivityError | None = None


def now_iso() -> str:
    return datetime.now(UTC).isoformat()


class ConnectionManager:
    """Opens Keycloak admin sessions and owns the ``connected`` status flag."""

    def __init__(self, client_factory: ClientFactory | None = None):
        self.client_factory = client_factory or build_admin_client

    async def connect(
        self, credential: ConnectionCredential, ctx: ReconcileContext
    ) -> ConnectionResult:
        """
        Build a client and probe Keycloak with an authentication round-trip.

        Never raises for connectivity problems: a failed probe yields
        ``connected=False`` with the cause attached, and the client is closed.
        Cancellation still propagates.
        """
        ctx.checkpoint()
        client = self.client_factory(credential)
        try:
            await client.authenticate()
        except Exception as e:
            error = TransientConnectivityError(credential.server_url, e)
            ctx.logger.warning(
                f"Keycloak at {credential.server_url} is not reachable: {e}",
                server_url=credential.server_url,
                connected=False,
                error_type=type(e).__name__,
            )
            await client.aclose()
            return ConnectionResult(client=None, connected=False, error=error)

        ctx.logger.debug(
            f"Connected to Keycloak at {credential.server_url}",
            server_url=credential.server_url,
            connected=True,
        )
        return ConnectionResult(client=client, connected=True)

    def apply_transition(self, record: DesiredStateRecord, connected: bool) -> bool:
        """
        Write the probe outcome into the record status.

        Returns:
            True when ``status.connected`` changed
        """
        metrics_collector.record_connection_status(
            resource_type=record.kind,
            namespace=record.metadata.namespace,
            name=record.metadata.name,
            connected=connected,
        )
        if record.status.connected == connected:
            return False
        record.status.connected = connected
        record.status.last_transition = now_iso()
        return True
