from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol


@dataclass(frozen=True)
class RolloutStatus:
    """Replica counts reported for a deployment config."""

    desired_replicas: int
    available_replicas: int

    @property
    def is_complete(self) -> bool:
        return self.desired_replicas > 0 and self.available_replicas >= self.desired_replicas

    @classmethod
    def from_resource(cls, resource: dict[str, Any]) -> "RolloutStatus":
        spec = resource.get("spec") or {}
        status = resource.get("status") or {}
        return cls(
            desired_replicas=int(spec.get("replicas") or 0),
            available_replicas=int(status.get("availableReplicas") or 0),
        )


class PlatformCommandRunner(Protocol):
    """Named platform operations the provisioning steps are written against.

    Each operation returns structured data or raises a TransportError
    subclass when the platform cannot be reached or refuses the call.
    """

    async def create_namespace(self, name: str, display_name: str, description: str) -> dict[str, Any]:
        ...

    async def get_resource(self, kind: str, name: str, namespace: str) -> dict[str, Any]:
        ...

    async def resource_exists(self, kind: str, name: str, namespace: str) -> bool:
        ...

    async def list_resources(
        self, kind: str, namespace: str, label_selector: str | None = None
    ) -> list[dict[str, Any]]:
        ...

    async def apply_resource(
        self,
        resource: dict[str, Any],
        namespace: str,
        *,
        overwrite: bool = True,
    ) -> list[dict[str, Any]]:
        ...

    async def get_template(self, name: str, namespace: str) -> dict[str, Any]:
        ...

    async def process_template(
        self, template: dict[str, Any], namespace: str, parameters: dict[str, str]
    ) -> dict[str, Any]:
        ...

    async def get_rollout_status(self, name: str, namespace: str) -> RolloutStatus:
        ...

    async def add_role_to_users(self, users: list[str], role: str, namespace: str) -> None:
        ...

    async def get_service_token(self, service_account: str, namespace: str) -> str | None:
        ...

    async def get_route_host(self, name: str, namespace: str) -> str:
        ...

    async def annotate_route(self, name: str, namespace: str, annotations: dict[str, str]) -> None:
        ...

    async def create_credential(
        self,
        jenkins_host: str,
        token: str,
        credential: dict[str, Any],
        file: tuple[str, bytes] | None = None,
    ) -> int:
        ...
