from __future__ import annotations

import base64
import copy
from typing import Any

import structlog

from subatomic.clients.base import BaseHTTPClient
from subatomic.core.errors import ConfigurationError, ResourceConflict, ResourceNotFound

logger = structlog.get_logger()

# kind -> (API group path, plural resource name)
RESOURCE_PATHS: dict[str, tuple[str, str]] = {
    "configmap": ("/api/v1", "configmaps"),
    "limitrange": ("/api/v1", "limitranges"),
    "persistentvolumeclaim": ("/api/v1", "persistentvolumeclaims"),
    "resourcequota": ("/api/v1", "resourcequotas"),
    "secret": ("/api/v1", "secrets"),
    "service": ("/api/v1", "services"),
    "serviceaccount": ("/api/v1", "serviceaccounts"),
    "rolebinding": ("/apis/rbac.authorization.k8s.io/v1", "rolebindings"),
    "buildconfig": ("/apis/build.openshift.io/v1", "buildconfigs"),
    "deploymentconfig": ("/apis/apps.openshift.io/v1", "deploymentconfigs"),
    "imagestream": ("/apis/image.openshift.io/v1", "imagestreams"),
    "route": ("/apis/route.openshift.io/v1", "routes"),
    "template": ("/apis/template.openshift.io/v1", "templates"),
}

MERGE_PATCH = {"Content-Type": "application/merge-patch+json"}


def resource_path(kind: str, namespace: str, name: str | None = None) -> str:
    try:
        prefix, plural = RESOURCE_PATHS[kind.lower()]
    except KeyError:
        raise ConfigurationError(
            f"Unsupported OpenShift resource kind {kind}", {"kind": kind}
        ) from None
    path = f"{prefix}/namespaces/{namespace}/{plural}"
    if name:
        path = f"{path}/{name}"
    return path


class OpenShiftClient(BaseHTTPClient):
    """OpenShift REST API client with retry logic and circuit breaker."""

    def __init__(
        self,
        base_url: str,
        token: str | None,
        *,
        timeout: float = 30.0,
        max_retries: int = 3,
        backoff_factor: float = 2.0,
        verify: bool = True,
    ) -> None:
        super().__init__(
            base_url,
            timeout=timeout,
            max_retries=max_retries,
            backoff_factor=backoff_factor,
            verify=verify,
        )
        self._token = token

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def request_project(self, name: str, display_name: str, description: str) -> dict[str, Any]:
        return await self.post(
            "/apis/project.openshift.io/v1/projectrequests",
            json={
                "kind": "ProjectRequest",
                "apiVersion": "project.openshift.io/v1",
                "metadata": {"name": name},
                "displayName": display_name,
                "description": description,
            },
        )

    async def get_resource(self, kind: str, name: str, namespace: str) -> dict[str, Any]:
        return await self.get(resource_path(kind, namespace, name))

    async def list_resources(
        self, kind: str, namespace: str, label_selector: str | None = None
    ) -> list[dict[str, Any]]:
        params = {"labelSelector": label_selector} if label_selector else None
        listing = await self.get(resource_path(kind, namespace), params=params)
        return listing.get("items") or []

    async def resource_exists(self, kind: str, name: str, namespace: str) -> bool:
        try:
            await self.get_resource(kind, name, namespace)
        except ResourceNotFound:
            return False
        return True

    async def create_resource(self, resource: dict[str, Any], namespace: str) -> dict[str, Any]:
        return await self.post(resource_path(resource["kind"], namespace), json=resource)

    async def replace_resource(self, resource: dict[str, Any], namespace: str) -> dict[str, Any]:
        name = resource["metadata"]["name"]
        current = await self.get_resource(resource["kind"], name, namespace)
        updated = copy.deepcopy(resource)
        version = current.get("metadata", {}).get("resourceVersion")
        if version:
            updated.setdefault("metadata", {})["resourceVersion"] = version
        return await self.put(resource_path(resource["kind"], namespace, name), json=updated)

    async def apply_resource(
        self,
        resource: dict[str, Any],
        namespace: str,
        *,
        overwrite: bool = True,
    ) -> list[dict[str, Any]]:
        """Create each resource, replacing existing ones when ``overwrite`` is set.

        ``List`` resources are applied item by item.
        """
        items = resource.get("items", []) if resource.get("kind") == "List" else [resource]
        applied = []
        for item in items:
            item = copy.deepcopy(item)
            item.setdefault("metadata", {})["namespace"] = namespace
            try:
                applied.append(await self.create_resource(item, namespace))
            except ResourceConflict:
                name = item["metadata"].get("name")
                if not overwrite:
                    logger.warning(
                        "openshift_resource_exists",
                        kind=item.get("kind"),
                        name=name,
                        namespace=namespace,
                    )
                    continue
                logger.info("openshift_resource_replaced", kind=item.get("kind"), name=name)
                applied.append(await self.replace_resource(item, namespace))
        return applied

    async def patch_resource(
        self, kind: str, name: str, namespace: str, patch: dict[str, Any]
    ) -> dict[str, Any]:
        return await self.patch(resource_path(kind, namespace, name), json=patch, headers=MERGE_PATCH)

    async def process_template(
        self,
        template: dict[str, Any],
        namespace: str,
        parameters: dict[str, str],
    ) -> dict[str, Any]:
        """Fill template parameters and return the processed objects as a List."""
        template = copy.deepcopy(template)
        for parameter in template.get("parameters", []):
            if parameter.get("name") in parameters:
                parameter["value"] = parameters[parameter["name"]]

        processed = await self.post(
            f"/apis/template.openshift.io/v1/namespaces/{namespace}/processedtemplates",
            json=template,
        )
        if "objects" not in processed:
            raise ConfigurationError(
                "Processed template did not contain any objects",
                {"template": template.get("metadata", {}).get("name"), "namespace": namespace},
            )
        return {"kind": "List", "apiVersion": "v1", "items": processed["objects"]}

    async def add_role_to_users(self, users: list[str], role: str, namespace: str) -> dict[str, Any]:
        """Bind a cluster role to users, keeping subjects already bound."""
        subjects = [
            {"kind": "ServiceAccount", "name": user.split(":")[3], "namespace": user.split(":")[2]}
            if user.startswith("system:serviceaccount:")
            else {"kind": "User", "apiGroup": "rbac.authorization.k8s.io", "name": user}
            for user in users
        ]
        binding_name = role.replace(":", "-")
        try:
            binding = await self.get_resource("RoleBinding", binding_name, namespace)
        except ResourceNotFound:
            return await self.create_resource(
                {
                    "kind": "RoleBinding",
                    "apiVersion": "rbac.authorization.k8s.io/v1",
                    "metadata": {"name": binding_name, "namespace": namespace},
                    "roleRef": {
                        "apiGroup": "rbac.authorization.k8s.io",
                        "kind": "ClusterRole",
                        "name": role,
                    },
                    "subjects": subjects,
                },
                namespace,
            )

        existing = binding.get("subjects") or []
        merged = existing + [s for s in subjects if s not in existing]
        if merged == existing:
            return binding
        binding["subjects"] = merged
        return await self.put(resource_path("RoleBinding", namespace, binding_name), json=binding)

    async def get_service_account_token(self, service_account: str, namespace: str) -> str | None:
        """Return the decoded API token for a service account, if one has been issued."""
        account = await self.get_resource("ServiceAccount", service_account, namespace)
        for secret_ref in account.get("secrets") or []:
            name = secret_ref.get("name", "")
            if "-token-" not in name:
                continue
            secret = await self.get_resource("Secret", name, namespace)
            token = (secret.get("data") or {}).get("token")
            if token:
                return base64.b64decode(token).decode("utf-8")
        return None
