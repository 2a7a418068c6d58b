"""
Pydantic model for KeycloakClient resources.

Besides the client itself, a KeycloakClient lists client roles and realm
roles that must exist for the client to work. Those roles are created when
missing and left alone otherwise.
"""

from pydantic import BaseModel, Field

from .common import RealmRoleRef
from .keycloak_api import ClientRepresentation


class KeycloakClientSpec(BaseModel):
    """Specification of an OpenID Connect client."""

    model_config = {"populate_by_name": True}

    client_id: str = Field(..., alias="clientId", description="Keycloak clientId")
    target_realm: str | None = Field(
        None,
        alias="targetRealm",
        description="Realm name in Keycloak (defaults to the parent realm's realmName)",
    )
    realm_ref: str | None = Field(
        None,
        alias="realmRef",
        description="Name of the KeycloakRealm, used when no owner reference is set",
    )
    public: bool = Field(False, description="Public client (no client secret)")
    direct_access: bool = Field(
        False, alias="directAccess", description="Enable direct access grants"
    )
    service_accounts_enabled: bool = Field(
        False, alias="serviceAccountsEnabled", description="Enable service account"
    )
    web_url: str | None = Field(None, alias="webUrl", description="Client root URL")
    redirect_uris: list[str] = Field(
        default_factory=list, alias="redirectUris", description="Valid redirect URIs"
    )
    web_origins: list[str] = Field(
        default_factory=list, alias="webOrigins", description="Allowed web origins"
    )
    attributes: dict[str, str] = Field(
        default_factory=dict, description="Additional client attributes"
    )
    client_roles: list[str] = Field(
        default_factory=list,
        alias="clientRoles",
        description="Client roles created on the client when missing",
    )
    realm_roles: list[RealmRoleRef] = Field(
        default_factory=list,
        alias="realmRoles",
        description="Realm roles created in the target realm when missing",
    )

    def to_representation(self) -> ClientRepresentation:
        redirect_uris = list(self.redirect_uris)
        if not redirect_uris and self.web_url:
            redirect_uris = [f"{self.web_url.rstrip('/')}/*"]

        return ClientRepresentation(
            client_id=self.client_id,
            public_client=self.public,
            direct_access_grants_enabled=self.direct_access,
            service_accounts_enabled=self.service_accounts_enabled,
            root_url=self.web_url,
            redirect_uris=redirect_uris or None,
            web_origins=list(self.web_origins) or None,
            attributes=dict(self.attributes) or None,
        )
