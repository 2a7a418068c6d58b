"""
Common models shared across different resource types.
"""

from pydantic import BaseModel, Field, model_validator


class CertificateSource(BaseModel):
    """Where to read the CA certificate that signs the Keycloak endpoint."""

    model_config = {"populate_by_name": True}

    secret_name: str | None = Field(
        None, alias="secretName", description="Secret holding the CA under 'ca.crt'"
    )
    config_map_name: str | None = Field(
        None,
        alias="configMapName",
        description="ConfigMap holding the CA under 'ca.crt'",
    )

    @model_validator(mode="after")
    def validate_single_source(self):
        if self.secret_name and self.config_map_name:
            raise ValueError("Only one of secretName or configMapName may be set")
        return self


class RealmRoleRef(BaseModel):
    """Realm role that a client expects to exist."""

    name: str = Field(..., description="Realm role name")
    composite: bool = Field(False, description="Whether the role is composite")
