"""
Pydantic model for KeycloakRealmRole resources.
"""

from pydantic import BaseModel, Field, model_validator

from .keycloak_api import RoleComposites, RoleRepresentation


class KeycloakRealmRoleSpec(BaseModel):
    """Specification of a realm role owned by this resource."""

    model_config = {"populate_by_name": True}

    name: str = Field(..., description="Realm role name")
    realm_ref: str | None = Field(
        None,
        alias="realmRef",
        description="Name of the KeycloakRealm, used when no owner reference is set",
    )
    description: str | None = Field(None, description="Role description")
    composite: bool = Field(False, description="Whether the role is composite")
    composites: list[str] = Field(
        default_factory=list, description="Realm roles included in this role"
    )
    attributes: dict[str, list[str]] = Field(
        default_factory=dict, description="Role attributes"
    )

    @model_validator(mode="after")
    def composites_imply_composite(self):
        if self.composites:
            self.composite = True
        return self

    def to_representation(self) -> RoleRepresentation:
        return RoleRepresentation(
            name=self.name,
            description=self.description,
            composite=self.composite,
            composites=RoleComposites(realm=list(self.composites)),
            attributes=dict(self.attributes) or None,
        )
