from subatomic.domain.models import (
    DevOpsEnvironment,
    DevOpsEnvironmentRequest,
    Member,
    Team,
    devops_environment_for,
    devops_project_id,
    kebab_case,
    user_from_domain_user,
)

__all__ = [
    "DevOpsEnvironment",
    "DevOpsEnvironmentRequest",
    "Member",
    "Team",
    "devops_environment_for",
    "devops_project_id",
    "kebab_case",
    "user_from_domain_user",
]
