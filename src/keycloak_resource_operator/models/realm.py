"""
Pydantic model for KeycloakRealm resources.
"""

from pydantic import BaseModel, Field, field_validator

from .keycloak_api import RealmRepresentation


class KeycloakRealmSpec(BaseModel):
    """Specification of a realm managed in Keycloak."""

    model_config = {"populate_by_name": True}

    realm_name: str = Field(..., alias="realmName", description="Keycloak realm name")
    keycloak_owner: str | None = Field(
        None,
        alias="keycloakOwner",
        description="Name of the Keycloak resource, used when no owner reference is set",
    )
    enabled: bool = Field(True, description="Whether the realm is enabled")
    display_name: str | None = Field(
        None, alias="displayName", description="Human readable realm name"
    )

    @field_validator("realm_name")
    @classmethod
    def validate_realm_name(cls, v: str) -> str:
        if not v or "/" in v:
            raise ValueError("realmName must be a non-empty name without '/'")
        return v

    def to_representation(self) -> RealmRepresentation:
        return RealmRepresentation(
            realm=self.realm_name,
            enabled=self.enabled,
            display_name=self.display_name,
        )
