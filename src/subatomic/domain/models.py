from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from subatomic.core.errors import ConfigurationError

_CAMEL_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")
_NON_ALNUM = re.compile(r"[^A-Za-z0-9]+")


def kebab_case(value: str) -> str:
    """'Team Awesome' -> 'team-awesome', 'fooBar_baz' -> 'foo-bar-baz'."""
    value = _CAMEL_BOUNDARY.sub(r"\1-\2", value)
    return _NON_ALNUM.sub("-", value).strip("-").lower()


def user_from_domain_user(domain_username: str, username_case: str = "lower") -> str:
    """Strip the Windows domain from 'DOMAIN\\user' and apply the cluster's username case."""
    username = domain_username.lower() if username_case == "lower" else domain_username.upper()
    return username.rsplit("\\", 1)[-1]


@dataclass(slots=True)
class Member:
    first_name: str
    domain_username: str
    screen_name: str | None = None

    @classmethod
    def from_event(cls, data: dict[str, Any]) -> "Member":
        return cls(
            first_name=data.get("firstName", ""),
            domain_username=data.get("domainUsername", ""),
            screen_name=(data.get("slackIdentity") or {}).get("screenName"),
        )


@dataclass(slots=True)
class Team:
    team_id: str
    name: str
    channel: str | None = None
    owners: list[Member] = field(default_factory=list)
    members: list[Member] = field(default_factory=list)

    @classmethod
    def from_event(cls, data: dict[str, Any]) -> "Team":
        if not data.get("name"):
            raise ConfigurationError("Team in event has no name", {"team": data.get("teamId")})
        return cls(
            team_id=data.get("teamId", ""),
            name=data["name"],
            channel=(data.get("slackIdentity") or {}).get("teamChannel"),
            owners=[Member.from_event(o) for o in data.get("owners") or []],
            members=[Member.from_event(m) for m in data.get("members") or []],
        )


@dataclass(frozen=True)
class DevOpsEnvironment:
    project_id: str
    display_name: str
    description: str


def devops_environment_for(team_name: str, postfix: str = "") -> DevOpsEnvironment:
    return DevOpsEnvironment(
        project_id=f"{kebab_case(team_name)}-devops{postfix}",
        display_name=f"{team_name} DevOps",
        description=f"DevOps environment for {team_name} [managed by Subatomic]",
    )


def devops_project_id(team_name: str) -> str:
    return devops_environment_for(team_name).project_id


@dataclass(slots=True)
class DevOpsEnvironmentRequest:
    """A DevOpsEnvironmentRequested domain event."""

    event_id: str
    team: Team
    requested_by: Member | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "DevOpsEnvironmentRequest":
        events = payload.get("DevOpsEnvironmentRequestedEvent")
        if isinstance(events, list):
            if not events:
                raise ConfigurationError("Event payload contains no DevOpsEnvironmentRequestedEvent")
            event = events[0]
        else:
            event = events or payload

        if "team" not in event:
            raise ConfigurationError("DevOpsEnvironmentRequestedEvent has no team", {"id": event.get("id")})
        requested_by = event.get("requestedBy")
        return cls(
            event_id=event.get("id", ""),
            team=Team.from_event(event["team"]),
            requested_by=Member.from_event(requested_by) if requested_by else None,
        )
