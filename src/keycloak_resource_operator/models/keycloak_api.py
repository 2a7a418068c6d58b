"""
Keycloak Admin API representations.

Only the fields the operator manages are modelled. Entities are addressed
by natural keys (realm name, clientId, role name), never by Keycloak's
generated ids, so nothing has to be remembered between reconciliations.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class _Representation(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    def to_payload(self) -> dict[str, Any]:
        """JSON body for the Admin API."""
        return self.model_dump(by_alias=True, exclude_none=True)


class RealmRepresentation(_Representation):
    realm: str
    enabled: bool = True
    display_name: str | None = Field(None, alias="displayName")


class ClientRepresentation(_Representation):
    id: str | None = None
    client_id: str = Field(..., alias="clientId")
    enabled: bool = True
    protocol: str = "openid-connect"
    public_client: bool = Field(False, alias="publicClient")
    direct_access_grants_enabled: bool = Field(
        False, alias="directAccessGrantsEnabled"
    )
    service_accounts_enabled: bool = Field(False, alias="serviceAccountsEnabled")
    root_url: str | None = Field(None, alias="rootUrl")
    redirect_uris: list[str] | None = Field(None, alias="redirectUris")
    web_origins: list[str] | None = Field(None, alias="webOrigins")
    attributes: dict[str, str] | None = None


class RoleComposites(_Representation):
    realm: list[str] = Field(default_factory=list)


class RoleRepresentation(_Representation):
    id: str | None = None
    name: str
    description: str | None = None
    composite: bool = False
    composites: RoleComposites | None = None
    attributes: dict[str, list[str]] | None = None

    def to_payload(self) -> dict[str, Any]:
        # Composites are attached through the composites endpoint
        payload = super().to_payload()
        payload.pop("composites", None)
        return payload
