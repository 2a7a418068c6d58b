"""
Pipeline steps for realms, clients and realm roles.

Create-if-absent steps look an entity up by its natural key and create it
only when it is missing; an existing entity is left untouched and the step
moves on to the next one. Always-synchronize steps overwrite the managed
attributes on every run.
"""

from keycloak_resource_operator.models.client import KeycloakClientSpec
from keycloak_resource_operator.models.keycloak_api import RoleRepresentation
from keycloak_resource_operator.models.realm import KeycloakRealmSpec
from keycloak_resource_operator.models.realm_role import KeycloakRealmRoleSpec
from keycloak_resource_operator.utils.keycloak_admin import IdentityProviderClient

from .context import ReconcileContext
from .pipeline import PipelineStep, SyncPolicy, SyncRequest, remote_call


class PutRealm(PipelineStep):
    name = "PutRealm"
    description = "unable to put realm"
    policy = SyncPolicy.CREATE_IF_ABSENT

    async def apply(
        self,
        request: SyncRequest,
        client: IdentityProviderClient,
        ctx: ReconcileContext,
    ) -> None:
        spec: KeycloakRealmSpec = request.spec
        realm = spec.to_representation()
        entity = f"realm {realm.realm}"

        if await remote_call(
            ctx, "exists_realm", entity, lambda: client.exists_realm(realm.realm)
        ):
            ctx.logger.debug(f"Realm {realm.realm} already exists", entity=entity)
            return

        await remote_call(ctx, "create_realm", entity, lambda: client.create_realm(realm))
        ctx.logger.info(f"Realm {realm.realm} created", entity=entity)


class PutClient(PipelineStep):
    name = "PutClient"
    description = "unable to put client"
    policy = SyncPolicy.ALWAYS_SYNCHRONIZE

    async def apply(
        self,
        request: SyncRequest,
        client: IdentityProviderClient,
        ctx: ReconcileContext,
    ) -> None:
        spec: KeycloakClientSpec = request.spec
        representation = spec.to_representation()
        entity = f"client {request.realm_name}/{spec.client_id}"

        await remote_call(
            ctx,
            "sync_client",
            entity,
            lambda: client.sync_client(request.realm_name, representation),
        )
        ctx.logger.info(f"Client {spec.client_id} synchronized", entity=entity)


class PutClientRoles(PipelineStep):
    name = "PutClientRoles"
    description = "unable to put client roles"
    policy = SyncPolicy.CREATE_IF_ABSENT

    async def apply(
        self,
        request: SyncRequest,
        client: IdentityProviderClient,
        ctx: ReconcileContext,
    ) -> None:
        spec: KeycloakClientSpec = request.spec
        realm_name = request.realm_name

        for role_name in spec.client_roles:
            entity = f"client role {realm_name}/{spec.client_id}/{role_name}"
            exists = await remote_call(
                ctx,
                "exists_client_role",
                entity,
                lambda: client.exists_client_role(realm_name, spec.client_id, role_name),
            )
            if exists:
                continue

            role = RoleRepresentation(name=role_name, composite=False)
            await remote_call(
                ctx,
                "create_client_role",
                entity,
                lambda: client.create_client_role(realm_name, spec.client_id, role),
            )
            ctx.logger.info(f"Client role {role_name} created", entity=entity)


class PutRealmRoles(PipelineStep):
    name = "PutRealmRoles"
    description = "unable to put realm roles"
    policy = SyncPolicy.CREATE_IF_ABSENT

    async def apply(
        self,
        request: SyncRequest,
        client: IdentityProviderClient,
        ctx: ReconcileContext,
    ) -> None:
        spec: KeycloakClientSpec = request.spec
        realm_name = request.realm_name

        for role_ref in spec.realm_roles:
            entity = f"realm role {realm_name}/{role_ref.name}"
            exists = await remote_call(
                ctx,
                "exists_realm_role",
                entity,
                lambda: client.exists_realm_role(realm_name, role_ref.name),
            )
            if exists:
                ctx.logger.debug(f"Realm role {role_ref.name} already exists", entity=entity)
                continue

            role = RoleRepresentation(name=role_ref.name, composite=role_ref.composite)
            await remote_call(
                ctx,
                "create_realm_role",
                entity,
                lambda: client.create_realm_role(realm_name, role),
            )
            ctx.logger.info(f"Realm role {role_ref.name} created", entity=entity)


class PutPrimaryRealmRole(PipelineStep):
    name = "PutPrimaryRealmRole"
    description = "unable to put realm role"
    policy = SyncPolicy.ALWAYS_SYNCHRONIZE

    async def apply(
        self,
        request: SyncRequest,
        client: IdentityProviderClient,
        ctx: ReconcileContext,
    ) -> None:
        spec: KeycloakRealmRoleSpec = request.spec
        role = spec.to_representation()
        entity = f"realm role {request.realm_name}/{role.name}"

        await remote_call(
            ctx,
            "sync_realm_role",
            entity,
            lambda: client.sync_realm_role(request.realm_name, role),
        )
        ctx.logger.info(f"Realm role {role.name} synchronized", entity=entity)
