"""
Application settings using Pydantic.

Provides environment-based configuration loading with SUBATOMIC_ prefix.
The settings object is built once by the entry point and handed to the
clients and the orchestrator explicitly.
"""

from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict

from subatomic.retry import RetryPolicy


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="SUBATOMIC_",
    )

    # Logging
    log_level: str = "INFO"
    json_logs: bool = True

    # OpenShift
    openshift_api_url: str = "https://openshift.local:8443"
    openshift_token: str | None = None
    openshift_verify_tls: bool = True
    shared_resource_namespace: str = "subatomic"
    jenkins_template_name: str = "jenkins-persistent-subatomic"
    jenkins_template_namespace: str = "subatomic"
    app_template_label: str = "usage=subatomic-app"
    image_stream_label: str = "usage=subatomic-is"
    docker_repo_url: str = "docker-registry.default.svc:5000"
    internal_docker_registry_url: str = "172.30.1.1:5000"
    username_case: str = "lower"

    # Bitbucket / Nexus / Maven
    bitbucket_base_url: str = "https://bitbucket.local"
    bitbucket_username: str = "subatomic"
    bitbucket_password: str | None = None
    bitbucket_ssh_private_key: str | None = None
    bitbucket_ca_cert: str | None = None
    nexus_base_url: str = "https://nexus.local"
    maven_settings_path: str | None = None

    # Slack
    slack_bot_token: str | None = None
    slack_api_url: str = "https://slack.com/api"
    slack_default_channel: str = "subatomic"

    # Documentation (linked from error messages)
    docs_base_url: str | None = None

    # HTTP client settings
    http_timeout: float = 30.0
    http_max_retries: int = 3
    http_retry_backoff_factor: float = 2.0

    # Retry policies for polled platform operations
    rollout_max_attempts: int = 60
    rollout_interval_seconds: float = 20.0
    credential_max_attempts: int = 6
    credential_interval_seconds: float = 5.0
    token_max_attempts: int = 4
    token_interval_seconds: float = 5.0

    # Whole-run deadline; None disables it
    run_timeout_seconds: float | None = 1800.0

    @property
    def rollout_policy(self) -> RetryPolicy:
        return RetryPolicy(self.rollout_max_attempts, self.rollout_interval_seconds)

    @property
    def credential_policy(self) -> RetryPolicy:
        return RetryPolicy(self.credential_max_attempts, self.credential_interval_seconds)

    @property
    def token_policy(self) -> RetryPolicy:
        return RetryPolicy(self.token_max_attempts, self.token_interval_seconds)


def get_settings() -> Settings:
    """Load settings from the environment."""
    return Settings()
