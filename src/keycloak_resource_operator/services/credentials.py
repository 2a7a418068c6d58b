"""
Connection credential resolution.

A ``Keycloak`` record only names the secret that holds the admin
credentials and, optionally, where the CA certificate lives. This module
turns those references into a ``ConnectionCredential`` on every
reconciliation, so a rotated secret is picked up on the next pass.
"""

from dataclasses import dataclass

from pydantic import ValidationError as PydanticValidationError

from keycloak_resource_operator.constants import (
    CA_CERTIFICATE_KEY,
    SECRET_PASSWORD_KEY,
    SECRET_TOKEN_KEY,
    SECRET_USERNAME_KEY,
)
from keycloak_resource_operator.errors import (
    CredentialInvalidError,
    CredentialNotFoundError,
)
from keycloak_resource_operator.models.common import CertificateSource
from keycloak_resource_operator.models.keycloak import KeycloakSpec
from keycloak_resource_operator.models.record import DesiredStateRecord, ObjectKey
from keycloak_resource_operator.utils.kubernetes import RecordStore

from .context import ReconcileContext


@dataclass(frozen=True)
class ConnectionCredential:
    """Everything needed to open an authenticated Keycloak admin session."""

    server_url: str
    admin_realm: str
    admin_client_id: str
    username: str | None = None
    password: str | None = None
    token: str | None = None
    ca_certificate: str | None = None

    def __repr__(self) -> str:
        # Never leak secrets into logs
        return (
            f"ConnectionCredential(server_url={self.server_url!r}, "
            f"admin_realm={self.admin_realm!r}, username={self.username!r})"
        )


def _decode(value: bytes | None) -> str:
    if not value:
        return ""
    return value.decode("utf-8").strip()


class CredentialResolver:
    """Resolves the credentials of a ``Keycloak`` connection record."""

    def __init__(self, store: RecordStore):
        self.store = store

    async def resolve(
        self, owner: DesiredStateRecord, ctx: ReconcileContext | None = None
    ) -> ConnectionCredential:
        """
        Build the connection credential for a ``Keycloak`` record.

        Args:
            owner: The ``Keycloak`` record
            ctx: Reconcile context (cancellation checkpoints)

        Returns:
            Freshly resolved credential

        Raises:
            CredentialNotFoundError: The secret or CA source does not exist
            CredentialInvalidError: A required key is missing or empty
        """
        try:
            spec = KeycloakSpec.model_validate(owner.spec)
        except PydanticValidationError as e:
            raise CredentialInvalidError(
                f"Keycloak {owner.key} has an invalid spec: {e}"
            ) from e

        namespace = owner.metadata.namespace

        if ctx:
            ctx.checkpoint()
        data = await self.store.read_secret(ObjectKey(namespace, spec.secret))
        if data is None:
            raise CredentialNotFoundError("Secret", namespace, spec.secret)

        username = _decode(data.get(SECRET_USERNAME_KEY))
        password = _decode(data.get(SECRET_PASSWORD_KEY))
        token = _decode(data.get(SECRET_TOKEN_KEY))

        if not token and not (username and password):
            raise CredentialInvalidError(
                f"Secret {namespace}/{spec.secret} must contain "
                f"'{SECRET_USERNAME_KEY}' and '{SECRET_PASSWORD_KEY}', or '{SECRET_TOKEN_KEY}'"
            )

        ca_certificate = None
        if spec.certificate is not None:
            ca_certificate = await self._read_ca(namespace, spec.certificate, ctx)

        return ConnectionCredential(
            server_url=spec.url,
            admin_realm=spec.admin_realm,
            admin_client_id=spec.admin_client_id,
            username=username or None,
            password=password or None,
            token=token or None,
            ca_certificate=ca_certificate,
        )

    async def _read_ca(
        self,
        namespace: str,
        source: CertificateSource,
        ctx: ReconcileContext | None,
    ) -> str | None:
        if ctx:
            ctx.checkpoint()

        if source.secret_name:
            secret = await self.store.read_secret(
                ObjectKey(namespace, source.secret_name)
            )
            if secret is None:
                raise CredentialNotFoundError("Secret", namespace, source.secret_name)
            value = _decode(secret.get(CA_CERTIFICATE_KEY))
            origin = f"Secret {namespace}/{source.secret_name}"
        elif source.config_map_name:
            config_map = await self.store.read_config_map(
                ObjectKey(namespace, source.config_map_name)
            )
            if config_map is None:
                raise CredentialNotFoundError(
                    "ConfigMap", namespace, source.config_map_name
                )
            value = (config_map.get(CA_CERTIFICATE_KEY) or "").strip()
            origin = f"ConfigMap {namespace}/{source.config_map_name}"
        else:
            return None

        if not value:
            raise CredentialInvalidError(
                f"{origin} does not contain '{CA_CERTIFICATE_KEY}'"
            )
        return value
