"""Steps that provision a team's DevOps environment and its Jenkins instance."""

from __future__ import annotations

import asyncio
import base64
import copy
from pathlib import Path
from typing import Any, List, NamedTuple

import structlog

from subatomic.clients.base import is_success_code
from subatomic.core.errors import (
    ConfigurationError,
    ExhaustedRetries,
    ResourceConflict,
    ResourceNotFound,
)
from subatomic.domain.models import user_from_domain_user
from subatomic.provisioning.registry import RunContext, Stage, Step, StepRegistry
from subatomic.resources import devops_resource
from subatomic.retry import retry

logger = structlog.get_logger()

JENKINS_NAME = "jenkins"
JENKINS_SERVICE_ACCOUNT = "subatomic-jenkins"
BITBUCKET_SECRET = "bitbucket-ssh"
ROUTE_TIMEOUT_ANNOTATION = {"haproxy.router.openshift.io/timeout": "120s"}
MAVEN_SETTINGS_FILE = "settings.xml"

_SERVER_MANAGED_METADATA = ("resourceVersion", "uid", "creationTimestamp", "selfLink", "generation")


def _relocated(resource: dict[str, Any], namespace: str) -> dict[str, Any]:
    """Copy of a resource with server-managed metadata dropped, moved to ``namespace``."""
    resource = copy.deepcopy(resource)
    metadata = resource.setdefault("metadata", {})
    for key in _SERVER_MANAGED_METADATA:
        metadata.pop(key, None)
    metadata["namespace"] = namespace
    resource.pop("status", None)
    return resource


async def _ensure_resource(ctx: RunContext, resource: dict[str, Any]) -> None:
    kind, name = resource["kind"], resource["metadata"]["name"]
    if await ctx.platform.resource_exists(kind, name, ctx.project_id):
        logger.warning("resource_already_exists", kind=kind, name=name, namespace=ctx.project_id)
        return
    await ctx.platform.apply_resource(resource, ctx.project_id)


async def create_devops_project(ctx: RunContext) -> None:
    env = ctx.environment
    try:
        await ctx.platform.create_namespace(env.project_id, env.display_name, env.description)
    except ResourceConflict:
        logger.warning("devops_project_exists", namespace=env.project_id)

    await _ensure_resource(ctx, devops_resource("resource_quota"))
    await _ensure_resource(ctx, devops_resource("limit_range"))


async def add_openshift_permissions(ctx: RunContext) -> None:
    case = ctx.settings.username_case
    owners = [user_from_domain_user(o.domain_username, case) for o in ctx.team.owners]
    members = [user_from_domain_user(m.domain_username, case) for m in ctx.team.members]

    await asyncio.gather(
        ctx.platform.add_role_to_users(owners, "admin", ctx.project_id),
        ctx.platform.add_role_to_users(members, "edit", ctx.project_id),
    )
    await ctx.platform.add_role_to_users(
        [f"system:serviceaccount:{ctx.project_id}:builder"],
        "system:image-puller",
        ctx.settings.shared_resource_namespace,
    )


def tagged_image_stream(
    image_stream: dict[str, Any], source_namespace: str, namespace: str
) -> dict[str, Any]:
    """ImageStream in ``namespace`` whose tags track a shared image stream's tags."""
    name = image_stream["metadata"]["name"]
    tags = [t["tag"] for t in (image_stream.get("status") or {}).get("tags") or []]
    if not tags:
        tags = [t["name"] for t in (image_stream.get("spec") or {}).get("tags") or []]
    return {
        "apiVersion": "image.openshift.io/v1",
        "kind": "ImageStream",
        "metadata": {"name": name, "namespace": namespace},
        "spec": {
            "lookupPolicy": {"local": False},
            "tags": [
                {
                    "name": tag,
                    "from": {
                        "kind": "ImageStreamTag",
                        "namespace": source_namespace,
                        "name": f"{name}:{tag}",
                    },
                    "referencePolicy": {"type": "Source"},
                }
                for tag in tags
            ],
        },
    }


async def _tag_subatomic_image_streams(ctx: RunContext) -> None:
    shared = ctx.settings.shared_resource_namespace
    image_streams = await ctx.platform.list_resources(
        "ImageStream", shared, label_selector=ctx.settings.image_stream_label
    )
    logger.info("tagging_image_streams", count=len(image_streams), namespace=ctx.project_id)
    if image_streams:
        await ctx.platform.apply_resource(
            {
                "kind": "List",
                "apiVersion": "v1",
                "items": [tagged_image_stream(s, shared, ctx.project_id) for s in image_streams],
            },
            ctx.project_id,
        )


async def copy_subatomic_resources(ctx: RunContext) -> None:
    templates = await ctx.platform.list_resources(
        "Template",
        ctx.settings.shared_resource_namespace,
        label_selector=ctx.settings.app_template_label,
    )
    logger.info("copying_app_templates", count=len(templates), namespace=ctx.project_id)
    if templates:
        await ctx.platform.apply_resource(
            {
                "kind": "List",
                "apiVersion": "v1",
                "items": [_relocated(t, ctx.project_id) for t in templates],
            },
            ctx.project_id,
        )
    await _tag_subatomic_image_streams(ctx)


async def add_bitbucket_secret(ctx: RunContext) -> None:
    if await ctx.platform.resource_exists("Secret", BITBUCKET_SECRET, ctx.project_id):
        logger.warning("bitbucket_secret_exists", namespace=ctx.project_id)
        return

    settings = ctx.settings
    if not settings.bitbucket_ssh_private_key:
        raise ConfigurationError("The Bitbucket SSH private key is not configured")

    data = {"ssh-privatekey": settings.bitbucket_ssh_private_key}
    if settings.bitbucket_ca_cert:
        data["ca.crt"] = settings.bitbucket_ca_cert
    await ctx.platform.apply_resource(
        {
            "apiVersion": "v1",
            "kind": "Secret",
            "type": "Opaque",
            "metadata": {"name": BITBUCKET_SECRET},
            "data": {k: base64.b64encode(v.encode("utf-8")).decode("ascii") for k, v in data.items()},
        },
        ctx.project_id,
    )


async def tag_jenkins_template(ctx: RunContext) -> None:
    settings = ctx.settings
    try:
        template = await ctx.platform.get_template(
            settings.jenkins_template_name, settings.jenkins_template_namespace
        )
    except ResourceNotFound as exc:
        raise ConfigurationError(
            f"Failed to find jenkins template for namespace {settings.jenkins_template_namespace}",
            {"template": settings.jenkins_template_name},
        ) from exc
    await ctx.platform.apply_resource(_relocated(template, ctx.project_id), ctx.project_id)


async def _create_jenkins_deployment(ctx: RunContext) -> None:
    settings = ctx.settings
    if await ctx.platform.resource_exists("DeploymentConfig", JENKINS_NAME, ctx.project_id):
        logger.warning("jenkins_deployment_exists", namespace=ctx.project_id)
        return

    shared = settings.shared_resource_namespace
    template = await ctx.platform.get_template(settings.jenkins_template_name, ctx.project_id)
    processed = await ctx.platform.process_template(
        template,
        ctx.project_id,
        {
            "NAMESPACE": shared,
            "BITBUCKET_NAME": "Subatomic Bitbucket",
            "BITBUCKET_URL": settings.bitbucket_base_url,
            "BITBUCKET_CREDENTIALS_ID": f"{ctx.project_id}-bitbucket",
            "JENKINS_ADMIN_EMAIL": "subatomic@local",
            "NAMESPACE_URL": f"{settings.docker_repo_url}/{shared}",
        },
    )
    await ctx.platform.apply_resource(processed, ctx.project_id)


async def rollout_jenkins(ctx: RunContext) -> None:
    await _create_jenkins_deployment(ctx)
    await ctx.platform.apply_resource(devops_resource("jenkins_service_account"), ctx.project_id)
    await ctx.platform.apply_resource(devops_resource("jenkins_role_binding"), ctx.project_id)

    status = await retry(
        lambda: ctx.platform.get_rollout_status(JENKINS_NAME, ctx.project_id),
        ctx.settings.rollout_policy,
        is_success=lambda rollout: rollout.is_complete,
        sleep=ctx.sleep,
        description="jenkins_rollout",
    )
    logger.info(
        "jenkins_rolled_out",
        namespace=ctx.project_id,
        replicas=status.available_replicas,
    )


class GlobalCredential(NamedTuple):
    """A Jenkins global credential, with the file uploaded alongside it if any."""

    name: str
    payload: dict[str, Any]
    file_path: str | None = None


def jenkins_credentials(ctx: RunContext) -> List[GlobalCredential]:
    """Global credentials every DevOps Jenkins needs, by display name."""
    settings = ctx.settings
    if not settings.maven_settings_path:
        raise ConfigurationError("The Maven settings.xml path is not configured")

    def string_credential(credential_id: str, secret: str, description: str) -> dict[str, Any]:
        return {
            "": "0",
            "credentials": {
                "scope": "GLOBAL",
                "id": credential_id,
                "secret": secret,
                "description": description,
                "$class": "org.jenkinsci.plugins.plaincredentials.impl.StringCredentialsImpl",
            },
        }

    bitbucket_id = f"{ctx.project_id}-bitbucket"
    return [
        GlobalCredential(
            "Bitbucket",
            {
                "": "0",
                "credentials": {
                    "scope": "GLOBAL",
                    "id": bitbucket_id,
                    "username": settings.bitbucket_username,
                    "password": settings.bitbucket_password or "",
                    "description": bitbucket_id,
                    "$class": "com.cloudbees.plugins.credentials.impl.UsernamePasswordCredentialsImpl",
                },
            },
        ),
        GlobalCredential(
            "Nexus",
            string_credential(
                "nexus-base-url",
                f"{settings.nexus_base_url.rstrip('/')}/content/repositories/",
                "Nexus base URL",
            ),
        ),
        GlobalCredential(
            "Docker",
            string_credential(
                "docker-registry-ip",
                settings.internal_docker_registry_url,
                "IP For internal docker registry",
            ),
        ),
        GlobalCredential(
            "Shared Resource Namespace",
            string_credential(
                "sub-shared-resource-namespace",
                settings.shared_resource_namespace,
                "Subatomic Shared Resource Namespace",
            ),
        ),
        GlobalCredential(
            "Maven",
            {
                "": "0",
                "credentials": {
                    "scope": "GLOBAL",
                    "id": "maven-settings",
                    "file": "file",
                    "fileName": MAVEN_SETTINGS_FILE,
                    "description": "Maven settings.xml",
                    "$class": "org.jenkinsci.plugins.plaincredentials.impl.FileCredentialsImpl",
                },
            },
            settings.maven_settings_path,
        ),
    ]


def _read_upload(credential: GlobalCredential) -> tuple[str, bytes] | None:
    if credential.file_path is None:
        return None
    try:
        content = Path(credential.file_path).read_bytes()
    except OSError as exc:
        raise ConfigurationError(
            f"Failed to read the file for {credential.name} Global Credentials",
            {"path": credential.file_path},
        ) from exc
    return credential.payload["credentials"]["fileName"], content


async def configure_jenkins(ctx: RunContext) -> None:
    credentials = [(c, _read_upload(c)) for c in jenkins_credentials(ctx)]

    await ctx.platform.annotate_route(JENKINS_NAME, ctx.project_id, ROUTE_TIMEOUT_ANNOTATION)
    host = await ctx.platform.get_route_host(JENKINS_NAME, ctx.project_id)

    token = await retry(
        lambda: ctx.platform.get_service_token(JENKINS_SERVICE_ACCOUNT, ctx.project_id),
        ctx.settings.token_policy,
        is_success=lambda value: value is not None,
        sleep=ctx.sleep,
        description="service_account_token",
    )

    for credential, upload in credentials:
        try:
            await retry(
                lambda credential=credential, upload=upload: ctx.platform.create_credential(
                    host, token, credential.payload, upload
                ),
                ctx.settings.credential_policy,
                is_success=is_success_code,
                sleep=ctx.sleep,
                description="jenkins_credential",
            )
        except ExhaustedRetries as exc:
            raise ConfigurationError(
                f"Failed to create {credential.name} Global Credentials in Jenkins",
                {"jenkins_host": host, "last_status": exc.last_result},
            ) from exc

    ctx.outputs["jenkins_host"] = host
    logger.info("jenkins_configured", namespace=ctx.project_id, host=host)


def register_devops_steps(registry: StepRegistry) -> StepRegistry:
    """Register the DevOps environment steps."""
    for step in (
        Step("openshift_env", "Create DevOps Openshift Project", create_devops_project),
        Step("openshift_permissions", "Add Openshift Permissions", add_openshift_permissions),
        Step("resources", "Copy Subatomic resources to DevOps Project", copy_subatomic_resources),
        Step("config_secrets", "Add Secrets", add_bitbucket_secret),
        Step("tag_template", "Tag jenkins template to environment", tag_jenkins_template),
        Step("rollout_jenkins", "Rollout Jenkins instance", rollout_jenkins),
        Step("config_jenkins", "Configure Jenkins", configure_jenkins),
    ):
        registry.register(step)
    return registry


STEPS = register_devops_steps(StepRegistry())


def build_devops_pipeline(registry: StepRegistry = STEPS) -> List[Stage]:
    return [
        registry.stage(
            "devops_environment",
            "*Create DevOps environment*",
            ["openshift_env", "openshift_permissions", "resources", "config_secrets"],
        ),
        registry.stage(
            "devops_jenkins",
            "*Create DevOps Jenkins*",
            ["tag_template", "rollout_jenkins", "config_jenkins"],
        ),
    ]
