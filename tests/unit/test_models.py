"""
Unit tests for Pydantic models.

These tests verify that the resource specs validate their input,
map onto Admin API representations and that records survive a round trip
through the API server representation.
"""

import pytest
from pydantic import ValidationError

from keycloak_resource_operator.constants import KIND_KEYCLOAK, KIND_REALM
from keycloak_resource_operator.models.client import KeycloakClientSpec
from keycloak_resource_operator.models.common import CertificateSource
from keycloak_resource_operator.models.keycloak import KeycloakSpec
from keycloak_resource_operator.models.realm import KeycloakRealmSpec
from keycloak_resource_operator.models.realm_role import KeycloakRealmRoleSpec
from keycloak_resource_operator.models.record import DesiredStateRecord, ObjectKey

from .conftest import NAMESPACE, make_object


class TestDesiredStateRecord:
    def test_fresh_object_has_default_status(self):
        record = DesiredStateRecord.from_k8s(
            make_object(KIND_REALM, "realm", {"realmName": "r"})
        )

        assert record.key == ObjectKey(NAMESPACE, "realm")
        assert record.status.connected is False
        assert record.status.value == ""
        assert record.status.failure_count == 0
        assert record.is_terminating is False

    def test_round_trip_keeps_foreign_fields(self):
        obj = make_object(
            KIND_REALM,
            "realm",
            {"realmName": "r", "futureField": 1},
            status={"failureCount": 2, "kopf": {"progress": {}}},
        )
        obj["metadata"]["labels"] = {"team": "a"}
        obj["metadata"]["uid"] = "abc"

        out = DesiredStateRecord.from_k8s(obj).to_k8s()

        assert out["spec"]["futureField"] == 1
        assert out["metadata"]["labels"] == {"team": "a"}
        assert out["metadata"]["uid"] == "abc"
        assert out["status"]["kopf"] == {"progress": {}}
        assert out["status"]["failureCount"] == 2

    def test_terminating_and_finalizers(self):
        record = DesiredStateRecord.from_k8s(
            make_object(
                KIND_REALM,
                "realm",
                {"realmName": "r"},
                finalizers=["keycloak.mdvr.nl/realm-cleanup"],
                terminating=True,
            )
        )

        assert record.is_terminating is True
        assert record.has_finalizer("keycloak.mdvr.nl/realm-cleanup")

    def test_owner_reference_lookup(self):
        record = DesiredStateRecord.from_k8s(
            make_object(
                KIND_REALM, "realm", {"realmName": "r"}, owner=(KIND_KEYCLOAK, "kc")
            )
        )

        assert record.owner_reference(KIND_KEYCLOAK).name == "kc"
        assert record.owner_reference(KIND_REALM) is None

    def test_status_snapshot_detects_changes(self):
        record = DesiredStateRecord.from_k8s(
            make_object(KIND_REALM, "realm", {"realmName": "r"})
        )
        snapshot = record.status_snapshot()

        record.status.failure_count += 1

        assert record.status_snapshot() != snapshot


class TestKeycloakSpec:
    def test_defaults(self):
        spec = KeycloakSpec(url="https://kc.example.com/", secret="admin")

        assert spec.url == "https://kc.example.com"
        assert spec.admin_realm == "master"
        assert spec.admin_client_id == "admin-cli"
        assert spec.certificate is None

    def test_url_requires_scheme(self):
        with pytest.raises(ValidationError):
            KeycloakSpec(url="kc.example.com", secret="admin")

    def test_certificate_from_alias(self):
        spec = KeycloakSpec.model_validate(
            {
                "url": "https://kc.example.com",
                "secret": "admin",
                "certificate": {"configMapName": "ca"},
            }
        )

        assert spec.certificate.config_map_name == "ca"

    def test_only_one_certificate_source(self):
        with pytest.raises(ValidationError):
            CertificateSource(secret_name="ca", config_map_name="ca")


class TestKeycloakRealmSpec:
    def test_representation(self):
        spec = KeycloakRealmSpec.model_validate({"realmName": "ns.test"})

        payload = spec.to_representation().to_payload()

        assert payload == {"realm": "ns.test", "enabled": True}

    @pytest.mark.parametrize("name", ["", "a/b"])
    def test_rejects_bad_realm_names(self, name):
        with pytest.raises(ValidationError):
            KeycloakRealmSpec(realm_name=name)


class TestKeycloakClientSpec:
    def test_redirect_uris_fall_back_to_web_url(self):
        spec = KeycloakClientSpec.model_validate(
            {"clientId": "web", "webUrl": "https://app.example.com/"}
        )

        representation = spec.to_representation()

        assert representation.redirect_uris == ["https://app.example.com/*"]
        assert representation.root_url == "https://app.example.com/"

    def test_explicit_redirect_uris_win(self):
        spec = KeycloakClientSpec.model_validate(
            {
                "clientId": "web",
                "webUrl": "https://app.example.com",
                "redirectUris": ["https://app.example.com/callback"],
            }
        )

        assert spec.to_representation().redirect_uris == [
            "https://app.example.com/callback"
        ]

    def test_payload_uses_admin_api_names(self):
        spec = KeycloakClientSpec.model_validate(
            {"clientId": "web", "public": True, "directAccess": True}
        )

        payload = spec.to_representation().to_payload()

        assert payload["clientId"] == "web"
        assert payload["publicClient"] is True
        assert payload["directAccessGrantsEnabled"] is True
        assert "redirectUris" not in payload

    def test_realm_roles(self):
        spec = KeycloakClientSpec.model_validate(
            {"clientId": "web", "realmRoles": [{"name": "admin", "composite": True}]}
        )

        assert spec.realm_roles[0].name == "admin"
        assert spec.realm_roles[0].composite is True


class TestKeycloakRealmRoleSpec:
    def test_composites_imply_composite(self):
        spec = KeycloakRealmRoleSpec(name="auditor", composites=["viewer"])

        representation = spec.to_representation()

        assert representation.composite is True
        assert representation.composites.realm == ["viewer"]
        assert "composites" not in representation.to_payload()

    def test_plain_role(self):
        spec = KeycloakRealmRoleSpec(name="auditor", description="Audit access")

        assert spec.to_representation().to_payload() == {
            "name": "auditor",
            "description": "Audit access",
            "composite": False,
        }
