from __future__ import annotations

from typing import Any, Callable

import structlog

from subatomic.clients.jenkins import JenkinsClient
from subatomic.clients.openshift import OpenShiftClient
from subatomic.config.settings import Settings
from subatomic.core.errors import ConfigurationError
from subatomic.providers.base import PlatformCommandRunner, RolloutStatus

logger = structlog.get_logger()


class OpenShiftPlatform(PlatformCommandRunner):
    """Platform operations backed by the OpenShift and Jenkins REST APIs."""

    def __init__(
        self,
        openshift: OpenShiftClient,
        *,
        jenkins_factory: Callable[[str, str], JenkinsClient] | None = None,
    ) -> None:
        self._openshift = openshift
        self._jenkins_factory = jenkins_factory or (lambda host, token: JenkinsClient(host, token))

    @classmethod
    def from_settings(cls, settings: Settings) -> "OpenShiftPlatform":
        openshift = OpenShiftClient(
            settings.openshift_api_url,
            settings.openshift_token,
            timeout=settings.http_timeout,
            max_retries=settings.http_max_retries,
            backoff_factor=settings.http_retry_backoff_factor,
            verify=settings.openshift_verify_tls,
        )

        def jenkins_factory(host: str, token: str) -> JenkinsClient:
            return JenkinsClient(
                host,
                token,
                timeout=settings.http_timeout,
                max_retries=settings.http_max_retries,
                backoff_factor=settings.http_retry_backoff_factor,
                verify=settings.openshift_verify_tls,
            )

        return cls(openshift, jenkins_factory=jenkins_factory)

    async def create_namespace(self, name: str, display_name: str, description: str) -> dict[str, Any]:
        logger.debug("creating_namespace", namespace=name)
        return await self._openshift.request_project(name, display_name, description)

    async def get_resource(self, kind: str, name: str, namespace: str) -> dict[str, Any]:
        return await self._openshift.get_resource(kind, name, namespace)

    async def resource_exists(self, kind: str, name: str, namespace: str) -> bool:
        return await self._openshift.resource_exists(kind, name, namespace)

    async def list_resources(
        self, kind: str, namespace: str, label_selector: str | None = None
    ) -> list[dict[str, Any]]:
        return await self._openshift.list_resources(kind, namespace, label_selector)

    async def apply_resource(
        self,
        resource: dict[str, Any],
        namespace: str,
        *,
        overwrite: bool = True,
    ) -> list[dict[str, Any]]:
        return await self._openshift.apply_resource(resource, namespace, overwrite=overwrite)

    async def get_template(self, name: str, namespace: str) -> dict[str, Any]:
        return await self._openshift.get_resource("Template", name, namespace)

    async def process_template(
        self, template: dict[str, Any], namespace: str, parameters: dict[str, str]
    ) -> dict[str, Any]:
        return await self._openshift.process_template(template, namespace, parameters)

    async def get_rollout_status(self, name: str, namespace: str) -> RolloutStatus:
        deployment = await self._openshift.get_resource("DeploymentConfig", name, namespace)
        return RolloutStatus.from_resource(deployment)

    async def add_role_to_users(self, users: list[str], role: str, namespace: str) -> None:
        if users:
            await self._openshift.add_role_to_users(users, role, namespace)

    async def get_service_token(self, service_account: str, namespace: str) -> str | None:
        return await self._openshift.get_service_account_token(service_account, namespace)

    async def get_route_host(self, name: str, namespace: str) -> str:
        route = await self._openshift.get_resource("Route", name, namespace)
        host = (route.get("spec") or {}).get("host")
        if not host:
            raise ConfigurationError(
                f"Route {name} in {namespace} has no host", {"route": name, "namespace": namespace}
            )
        return host

    async def annotate_route(self, name: str, namespace: str, annotations: dict[str, str]) -> None:
        route = await self._openshift.get_resource("Route", name, namespace)
        current = (route.get("metadata") or {}).get("annotations") or {}
        if all(current.get(key) == value for key, value in annotations.items()):
            return
        await self._openshift.patch_resource(
            "Route", name, namespace, {"metadata": {"annotations": annotations}}
        )

    async def create_credential(
        self,
        jenkins_host: str,
        token: str,
        credential: dict[str, Any],
        file: tuple[str, bytes] | None = None,
    ) -> int:
        client = self._jenkins_factory(jenkins_host, token)
        return await client.create_credential(credential, file)
