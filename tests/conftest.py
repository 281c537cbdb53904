"""Root test configuration."""

import logging
from typing import Any

import pytest
import structlog

from subatomic.config import Settings
from subatomic.core.errors import ResourceNotFound
from subatomic.providers.base import RolloutStatus


def pytest_configure(config):
    """Configure structlog for tests to suppress debug/info output."""
    logging.basicConfig(level=logging.WARNING, force=True)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


class StubPlatform:
    """Records platform calls and answers them from canned state."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple]] = []
        self.existing: set[tuple[str, str]] = set()
        self.applied: list[dict[str, Any]] = []
        self.role_bindings: list[tuple[list[str], str, str]] = []
        self.listings: dict[str, list[dict[str, Any]]] = {"Template": [], "ImageStream": []}
        self.jenkins_template: dict[str, Any] | None = {
            "kind": "Template",
            "apiVersion": "template.openshift.io/v1",
            "metadata": {
                "name": "jenkins-persistent-subatomic",
                "namespace": "subatomic",
                "uid": "abc",
                "resourceVersion": "42",
            },
            "parameters": [{"name": "NAMESPACE"}],
            "objects": [],
        }
        self.rollout_statuses: list[RolloutStatus] = [RolloutStatus(1, 1)]
        self.tokens: list[str | None] = ["jenkins-token"]
        self.credential_statuses: list[int] = [200]
        self.route_host = "jenkins-team-awesome-devops.apps.test"
        self.credentials: list[tuple[str, str, dict[str, Any]]] = []
        self.uploads: dict[str, tuple[str, bytes]] = {}
        self.processed_parameters: dict[str, str] | None = None

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))

    @staticmethod
    def _next(values: list[Any]) -> Any:
        return values.pop(0) if len(values) > 1 else values[0]

    async def create_namespace(self, name, display_name, description):
        self._record("create_namespace", name, display_name, description)
        return {"metadata": {"name": name}}

    async def get_resource(self, kind, name, namespace):
        self._record("get_resource", kind, name, namespace)
        if (kind, name) not in self.existing:
            raise ResourceNotFound(f"{kind} {name} not found", 404)
        return {"kind": kind, "metadata": {"name": name}}

    async def resource_exists(self, kind, name, namespace):
        self._record("resource_exists", kind, name, namespace)
        return (kind, name) in self.existing

    async def list_resources(self, kind, namespace, label_selector=None):
        self._record("list_resources", kind, namespace, label_selector)
        return list(self.listings.get(kind, []))

    async def apply_resource(self, resource, namespace, *, overwrite=True):
        self._record("apply_resource", resource.get("kind"), namespace)
        self.applied.append(resource)
        return [resource]

    async def get_template(self, name, namespace):
        self._record("get_template", name, namespace)
        if self.jenkins_template is None:
            raise ResourceNotFound(f"Template {name} not found", 404)
        return self.jenkins_template

    async def process_template(self, template, namespace, parameters):
        self._record("process_template", namespace)
        self.processed_parameters = parameters
        return {
            "kind": "List",
            "apiVersion": "v1",
            "items": [{"kind": "DeploymentConfig", "metadata": {"name": "jenkins"}}],
        }

    async def get_rollout_status(self, name, namespace):
        self._record("get_rollout_status", name, namespace)
        return self._next(self.rollout_statuses)

    async def add_role_to_users(self, users, role, namespace):
        self._record("add_role_to_users", tuple(users), role, namespace)
        self.role_bindings.append((list(users), role, namespace))

    async def get_service_token(self, service_account, namespace):
        self._record("get_service_token", service_account, namespace)
        return self._next(self.tokens)

    async def get_route_host(self, name, namespace):
        self._record("get_route_host", name, namespace)
        return self.route_host

    async def annotate_route(self, name, namespace, annotations):
        self._record("annotate_route", name, namespace, dict(annotations))

    async def create_credential(self, jenkins_host, token, credential, file=None):
        self._record("create_credential", jenkins_host)
        self.credentials.append((jenkins_host, token, credential))
        if file is not None:
            self.uploads[credential["credentials"]["id"]] = file
        return self._next(self.credential_statuses)

    def names(self) -> list[str]:
        return [name for name, _ in self.calls]


@pytest.fixture
def maven_settings(tmp_path):
    path = tmp_path / "settings.xml"
    path.write_text("<settings/>", encoding="utf-8")
    return path


@pytest.fixture
def settings(maven_settings):
    return Settings(
        _env_file=None,
        openshift_api_url="https://openshift.test",
        openshift_token="openshift-token",
        bitbucket_base_url="https://bitbucket.test",
        bitbucket_password="bitbucket-password",
        bitbucket_ssh_private_key="PRIVATE KEY",
        bitbucket_ca_cert="CA CERT",
        nexus_base_url="https://nexus.test/",
        maven_settings_path=str(maven_settings),
        slack_bot_token=None,
        docs_base_url="https://docs.test",
        http_max_retries=1,
        http_retry_backoff_factor=0,
        rollout_max_attempts=3,
        rollout_interval_seconds=0,
        credential_max_attempts=3,
        credential_interval_seconds=0,
        token_max_attempts=3,
        token_interval_seconds=0,
        run_timeout_seconds=None,
    )


@pytest.fixture
def platform():
    return StubPlatform()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def fake_sleep(sleeps):
    async def sleep(delay: float) -> None:
        sleeps.append(delay)

    return sleep
