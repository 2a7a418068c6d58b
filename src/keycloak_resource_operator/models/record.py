"""
Desired-state record model.

A ``DesiredStateRecord`` is the whole custom object as stored in the
cluster: metadata, the raw spec and the status block the operator owns.
Unknown metadata and status fields are preserved so that a record can be
written back without dropping anything other controllers put there.
"""

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from keycloak_resource_operator.constants import API_GROUP, API_VERSION


@dataclass(frozen=True)
class ObjectKey:
    """Namespaced name identifying a record."""

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


class OwnerReference(BaseModel):
    """Structural link from a record to its parent."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    api_version: str = Field("", alias="apiVersion")
    kind: str
    name: str
    uid: str | None = None
    controller: bool | None = None
    block_owner_deletion: bool | None = Field(None, alias="blockOwnerDeletion")


class ObjectMeta(BaseModel):
    """Subset of Kubernetes object metadata the reconciler relies on."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    name: str
    namespace: str = "default"
    resource_version: str | None = Field(None, alias="resourceVersion")
    deletion_timestamp: str | None = Field(None, alias="deletionTimestamp")
    finalizers: list[str] = Field(default_factory=list)
    owner_references: list[OwnerReference] = Field(
        default_factory=list, alias="ownerReferences"
    )


class ResourceStatus(BaseModel):
    """Status block written back after every reconciliation pass."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    connected: bool = False
    value: str = ""
    failure_count: int = Field(0, alias="failureCount")
    last_transition: str | None = Field(None, alias="lastTransition")


class DesiredStateRecord(BaseModel):
    """A managed custom resource: Keycloak connection, realm, client or role."""

    model_config = ConfigDict(populate_by_name=True)

    api_version: str = Field(f"{API_GROUP}/{API_VERSION}", alias="apiVersion")
    kind: str
    metadata: ObjectMeta
    spec: dict[str, Any] = Field(default_factory=dict)
    status: ResourceStatus = Field(default_factory=ResourceStatus)

    @classmethod
    def from_k8s(cls, obj: dict[str, Any]) -> "DesiredStateRecord":
        """Build a record from a custom object as returned by the API server."""
        data = dict(obj)
        # Freshly created objects have no status at all
        if not data.get("status"):
            data.pop("status", None)
        if data.get("spec") is None:
            data.pop("spec", None)
        return cls.model_validate(data)

    def to_k8s(self) -> dict[str, Any]:
        """Serialize back to the API server representation."""
        return self.model_dump(by_alias=True, exclude_none=True)

    @property
    def key(self) -> ObjectKey:
        return ObjectKey(self.metadata.namespace, self.metadata.name)

    @property
    def is_terminating(self) -> bool:
        """True once the owner of the record has requested its deletion."""
        return bool(self.metadata.deletion_timestamp)

    def has_finalizer(self, finalizer: str) -> bool:
        return finalizer in self.metadata.finalizers

    def owner_reference(self, kind: str) -> OwnerReference | None:
        """Return the first owner reference of the given kind, if any."""
        for reference in self.metadata.owner_references:
            if reference.kind == kind:
                return reference
        return None

    def status_snapshot(self) -> dict[str, Any]:
        """Comparable copy of the status block."""
        return self.status.model_dump(by_alias=True)
