"""
Keycloak Admin API client utilities.

This module defines the ``IdentityProviderClient`` capability the
reconcilers consume and ``KeycloakAdminClient``, its implementation on top
of the Keycloak Admin REST API.

The client handles:
- Password-grant or bearer-token authentication, re-authenticating on 401
- TLS verification against a custom CA certificate
- Existence checks, create and synchronize calls keyed by natural names
- Idempotent deletes (a missing entity counts as deleted)
"""

import logging
import ssl
import time
from typing import Any, Protocol
from urllib.parse import quote

import httpx

from keycloak_resource_operator.constants import MASTER_REALM
from keycloak_resource_operator.models.keycloak_api import (
    ClientRepresentation,
    RealmRepresentation,
    RoleRepresentation,
)

logger = logging.getLogger(__name__)


class KeycloakAdminError(Exception):
    """Base exception for Keycloak Admin API errors."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body

    def body_preview(self, limit: int = 1024) -> str | None:
        """Return a truncated preview of the response body for logging."""
        if self.response_body is None:
            return None
        if len(self.response_body) <= limit:
            return self.response_body
        return f"{self.response_body[:limit]}...<truncated>"


class IdentityProviderClient(Protocol):
    """Remote operations the reconcilers need from an identity provider."""

    async def authenticate(self) -> None: ...

    async def exists_realm(self, realm_name: str) -> bool: ...

    async def create_realm(self, realm: RealmRepresentation) -> None: ...

    async def delete_realm(self, realm_name: str) -> None: ...

    async def sync_client(self, realm_name: str, client: ClientRepresentation) -> None: ...

    async def delete_client(self, realm_name: str, client_id: str) -> None: ...

    async def exists_client_role(
        self, realm_name: str, client_id: str, role_name: str
    ) -> bool: ...

    async def create_client_role(
        self, realm_name: str, client_id: str, role: RoleRepresentation
    ) -> None: ...

    async def exists_realm_role(self, realm_name: str, role_name: str) -> bool: ...

    async def create_realm_role(
        self, realm_name: str, role: RoleRepresentation
    ) -> None: ...

    async def sync_realm_role(self, realm_name: str, role: RoleRepresentation) -> None: ...

    async def delete_realm_role(self, realm_name: str, role_name: str) -> None: ...

    async def aclose(self) -> None: ...


def _segment(value: str) -> str:
    """Quote a natural key for use as a URL path segment."""
    return quote(value, safe="")


class KeycloakAdminClient:
    """
    Client for the Keycloak Admin REST API.

    One instance is built per reconciliation from freshly resolved
    credentials and closed when the reconciliation ends.
    """

    def __init__(
        self,
        server_url: str,
        username: str | None = None,
        password: str | None = None,
        token: str | None = None,
        realm: str = MASTER_REALM,
        client_id: str = "admin-cli",
        ca_certificate: str | None = None,
        timeout: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize Keycloak Admin client.

        Args:
            server_url: Base URL of the Keycloak server
            username: Admin username (password grant)
            password: Admin password (password grant)
            token: Pre-issued bearer token, used instead of username/password
            realm: Admin realm (default: master)
            client_id: Client ID for the password grant
            ca_certificate: PEM encoded CA used to verify the server certificate
            timeout: Request timeout in seconds
            http_client: Pre-built httpx client (tests inject a mock transport)
        """
        self.server_url = server_url.rstrip("/")
        self.username = username
        self.password = password
        self.static_token = token
        self.admin_realm = realm
        self.client_id = client_id
        self.ca_certificate = ca_certificate
        self.timeout = timeout

        self._http_client = http_client
        self._owns_http_client = http_client is None

        self.access_token: str | None = token
        self.refresh_token: str | None = None
        self.token_expires_at: float | None = None

    def _verify(self) -> ssl.SSLContext | bool:
        if self.ca_certificate:
            return ssl.create_default_context(cadata=self.ca_certificate)
        return True

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the httpx client (lazy initialization)."""
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(
                verify=self._verify(),
                timeout=httpx.Timeout(self.timeout),
                headers={"Content-Type": "application/json"},
                follow_redirects=False,
            )
            self._owns_http_client = True
        return self._http_client

    async def aclose(self) -> None:
        """Drop tokens and close the HTTP client if this instance created it."""
        self.access_token = self.static_token
        self.refresh_token = None
        self.token_expires_at = None
        if self._owns_http_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> "KeycloakAdminClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def authenticate(self) -> None:
        """
        Authenticate with Keycloak.

        With username/password this performs the password grant and stores
        the tokens. With a static token it issues a cheap authenticated read
        of the admin realm, so the call works as a liveness probe either way.
        """
        if self.static_token:
            await self._request("GET", f"realms/{_segment(self.admin_realm)}")
            logger.debug("Bearer token accepted by Keycloak")
            return

        auth_url = (
            f"{self.server_url}/realms/{_segment(self.admin_realm)}"
            "/protocol/openid-connect/token"
        )
        auth_data = {
            "username": self.username or "",
            "password": self.password or "",
            "grant_type": "password",
            "client_id": self.client_id,
        }

        try:
            response = await self._get_client().post(
                auth_url,
                data=auth_data,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
            response.raise_for_status()
            token_data = response.json()
        except httpx.HTTPStatusError as e:
            raise KeycloakAdminError(
                f"Authentication failed: {e}",
                status_code=e.response.status_code,
                response_body=e.response.text,
            ) from e
        except httpx.HTTPError as e:
            raise KeycloakAdminError(f"Authentication failed: {e}") from e

        self.access_token = token_data["access_token"]
        self.refresh_token = token_data.get("refresh_token")
        self.token_expires_at = time.time() + token_data.get("expires_in", 300)
        logger.debug("Successfully authenticated with Keycloak")

    async def _ensure_authenticated(self) -> None:
        if self.static_token:
            return
        # No token or token expiring within 30s
        if not self.access_token or (
            self.token_expires_at and time.time() >= self.token_expires_at - 30
        ):
            await self.authenticate()

    async def _send(
        self,
        method: str,
        url: str,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        return await self._get_client().request(
            method=method,
            url=url,
            json=json,
            params=params,
            headers={"Authorization": f"Bearer {self.access_token}"},
        )

    async def _request(
        self,
        method: str,
        endpoint: str,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """
        Make an authenticated request to the Keycloak Admin API.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE)
            endpoint: API endpoint relative to ``/admin/``
            json: JSON request body
            params: Query parameters

        Raises:
            KeycloakAdminError: On transport errors and non-2xx responses
        """
        await self._ensure_authenticated()
        url = f"{self.server_url}/admin/{endpoint.lstrip('/')}"

        try:
            response = await self._send(method, url, json=json, params=params)

            # Token might have been revoked or expired early
            if response.status_code == 401 and not self.static_token:
                logger.warning("Received 401, attempting re-authentication")
                await self.authenticate()
                response = await self._send(method, url, json=json, params=params)

            response.raise_for_status()
            return response

        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            error = KeycloakAdminError(
                f"{method} {endpoint} failed with HTTP {status_code}",
                status_code=status_code,
                response_body=e.response.text or None,
            )
            if status_code != 404:
                logger.error(
                    f"Request failed: {method} {url} - {e}",
                    extra={
                        "http_status": status_code,
                        "response_body": error.body_preview(),
                    },
                )
            raise error from e

        except httpx.HTTPError as e:
            logger.error(f"Request failed: {method} {url} - {e}")
            raise KeycloakAdminError(f"{method} {endpoint} failed: {e}") from e

    async def _exists(self, endpoint: str) -> bool:
        try:
            await self._request("GET", endpoint)
        except KeycloakAdminError as e:
            if e.status_code == 404:
                return False
            raise
        return True

    async def _delete(self, endpoint: str, description: str) -> None:
        try:
            await self._request("DELETE", endpoint)
        except KeycloakAdminError as e:
            if e.status_code == 404:
                logger.info(f"{description} not found, nothing to delete")
                return
            raise
        logger.info(f"Successfully deleted {description}")

    # Realm Management Methods

    async def exists_realm(self, realm_name: str) -> bool:
        return await self._exists(f"realms/{_segment(realm_name)}")

    async def create_realm(self, realm: RealmRepresentation) -> None:
        logger.info(f"Creating realm '{realm.realm}'")
        await self._request("POST", "realms", json=realm.to_payload())

    async def delete_realm(self, realm_name: str) -> None:
        if realm_name == MASTER_REALM:
            raise KeycloakAdminError("Refusing to delete the master realm")
        await self._delete(f"realms/{_segment(realm_name)}", f"realm '{realm_name}'")

    # Client Management Methods

    async def get_client_uuid(self, realm_name: str, client_id: str) -> str | None:
        """Look up Keycloak's internal id for a clientId."""
        response = await self._request(
            "GET",
            f"realms/{_segment(realm_name)}/clients",
            params={"clientId": client_id},
        )
        for item in response.json() or []:
            if item.get("clientId") == client_id:
                return item.get("id")
        return None

    async def _require_client_uuid(self, realm_name: str, client_id: str) -> str:
        client_uuid = await self.get_client_uuid(realm_name, client_id)
        if client_uuid is None:
            raise KeycloakAdminError(
                f"Client '{client_id}' not found in realm '{realm_name}'",
                status_code=404,
            )
        return client_uuid

    async def sync_client(self, realm_name: str, client: ClientRepresentation) -> None:
        """Create the client or overwrite the managed attributes of an existing one."""
        realm = _segment(realm_name)
        client_uuid = await self.get_client_uuid(realm_name, client.client_id)
        if client_uuid is None:
            logger.info(f"Creating client '{client.client_id}' in realm '{realm_name}'")
            await self._request("POST", f"realms/{realm}/clients", json=client.to_payload())
            return

        logger.info(f"Updating client '{client.client_id}' in realm '{realm_name}'")
        payload = client.model_copy(update={"id": client_uuid}).to_payload()
        await self._request("PUT", f"realms/{realm}/clients/{client_uuid}", json=payload)

    async def delete_client(self, realm_name: str, client_id: str) -> None:
        client_uuid = await self.get_client_uuid(realm_name, client_id)
        if client_uuid is None:
            logger.info(f"Client '{client_id}' not found, nothing to delete")
            return
        await self._delete(
            f"realms/{_segment(realm_name)}/clients/{client_uuid}",
            f"client '{client_id}'",
        )

    async def exists_client_role(
        self, realm_name: str, client_id: str, role_name: str
    ) -> bool:
        client_uuid = await self._require_client_uuid(realm_name, client_id)
        return await self._exists(
            f"realms/{_segment(realm_name)}/clients/{client_uuid}/roles/{_segment(role_name)}"
        )

    async def create_client_role(
        self, realm_name: str, client_id: str, role: RoleRepresentation
    ) -> None:
        client_uuid = await self._require_client_uuid(realm_name, client_id)
        logger.info(f"Creating client role '{role.name}' for client '{client_id}'")
        await self._request(
            "POST",
            f"realms/{_segment(realm_name)}/clients/{client_uuid}/roles",
            json=role.to_payload(),
        )

    # Realm Role Management Methods

    async def exists_realm_role(self, realm_name: str, role_name: str) -> bool:
        return await self._exists(
            f"realms/{_segment(realm_name)}/roles/{_segment(role_name)}"
        )

    async def create_realm_role(self, realm_name: str, role: RoleRepresentation) -> None:
        logger.info(f"Creating realm role '{role.name}' in realm '{realm_name}'")
        await self._request(
            "POST", f"realms/{_segment(realm_name)}/roles", json=role.to_payload()
        )

    async def sync_realm_role(self, realm_name: str, role: RoleRepresentation) -> None:
        """
        Create or overwrite a realm role, then attach missing composites.

        Composites already attached but no longer listed are kept.
        """
        realm = _segment(realm_name)
        role_path = f"realms/{realm}/roles/{_segment(role.name)}"

        if await self._exists(role_path):
            logger.info(f"Updating realm role '{role.name}' in realm '{realm_name}'")
            await self._request("PUT", role_path, json=role.to_payload())
        else:
            await self.create_realm_role(realm_name, role)

        desired = role.composites.realm if role.composites else []
        if not desired:
            return

        response = await self._request("GET", f"{role_path}/composites/realm")
        current = {item.get("name") for item in response.json() or []}
        missing = [name for name in desired if name not in current]
        if not missing:
            return

        representations = []
        for name in missing:
            composite = await self._request("GET", f"realms/{realm}/roles/{_segment(name)}")
            representations.append(composite.json())

        logger.info(f"Adding composites {missing} to realm role '{role.name}'")
        await self._request("POST", f"{role_path}/composites", json=representations)

    async def delete_realm_role(self, realm_name: str, role_name: str) -> None:
        await self._delete(
            f"realms/{_segment(realm_name)}/roles/{_segment(role_name)}",
            f"realm role '{role_name}'",
        )
