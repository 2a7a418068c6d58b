"""
Pydantic model for Keycloak connection resources.

A ``Keycloak`` resource describes how to reach an existing Keycloak server:
its URL, the secret holding admin credentials and an optional CA source.
"""

from pydantic import BaseModel, Field, field_validator

from keycloak_resource_operator.constants import (
    DEFAULT_ADMIN_CLIENT_ID,
    DEFAULT_ADMIN_REALM,
)

from .common import CertificateSource


class KeycloakSpec(BaseModel):
    """Specification of a Keycloak connection."""

    model_config = {"populate_by_name": True}

    url: str = Field(..., description="Base URL of the Keycloak server")
    secret: str = Field(
        ...,
        description="Secret with 'username' and 'password' (or 'token') for the admin API",
    )
    admin_realm: str = Field(
        DEFAULT_ADMIN_REALM,
        alias="adminRealm",
        description="Realm used to authenticate the admin user",
    )
    admin_client_id: str = Field(
        DEFAULT_ADMIN_CLIENT_ID,
        alias="adminClientId",
        description="Client used for the password grant",
    )
    certificate: CertificateSource | None = Field(
        None, description="Optional CA certificate source for TLS verification"
    )

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("url must start with http:// or https://")
        return v.rstrip("/")
