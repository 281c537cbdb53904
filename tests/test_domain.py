import pytest

from subatomic.core.errors import ConfigurationError
from subatomic.domain import (
    DevOpsEnvironmentRequest,
    Team,
    devops_environment_for,
    devops_project_id,
    kebab_case,
    user_from_domain_user,
)

EVENT = {
    "id": "evt-1",
    "team": {
        "teamId": "team-1",
        "name": "Team Awesome",
        "slackIdentity": {"teamChannel": "team-awesome"},
        "owners": [{"firstName": "Jane", "domainUsername": "CORP\\JDoe"}],
        "members": [
            {"firstName": "Al", "domainUsername": "CORP\\asmith", "slackIdentity": {"screenName": "al"}}
        ],
    },
    "requestedBy": {"firstName": "Jane", "domainUsername": "CORP\\JDoe"},
}


@pytest.mark.parametrize(
    "value,expected",
    [
        ("Team Awesome", "team-awesome"),
        ("fooBar_baz", "foo-bar-baz"),
        ("  Spaced  Out ", "spaced-out"),
    ],
)
def test_kebab_case(value, expected):
    assert kebab_case(value) == expected


def test_user_from_domain_user():
    assert user_from_domain_user("CORP\\JDoe") == "jdoe"
    assert user_from_domain_user("CORP\\JDoe", "upper") == "JDOE"
    assert user_from_domain_user("plain") == "plain"


def test_devops_environment_for_team():
    env = devops_environment_for("Team Awesome")
    assert env.project_id == "team-awesome-devops"
    assert env.display_name == "Team Awesome DevOps"
    assert "Team Awesome" in env.description
    assert devops_project_id("Team Awesome") == "team-awesome-devops"


@pytest.mark.parametrize(
    "payload",
    [
        {"DevOpsEnvironmentRequestedEvent": [EVENT]},
        {"DevOpsEnvironmentRequestedEvent": EVENT},
        EVENT,
    ],
)
def test_request_from_payload_shapes(payload):
    request = DevOpsEnvironmentRequest.from_payload(payload)

    assert request.event_id == "evt-1"
    assert request.team.name == "Team Awesome"
    assert request.team.channel == "team-awesome"
    assert [o.domain_username for o in request.team.owners] == ["CORP\\JDoe"]
    assert request.team.members[0].screen_name == "al"
    assert request.requested_by.first_name == "Jane"


def test_request_without_team_is_rejected():
    with pytest.raises(ConfigurationError):
        DevOpsEnvironmentRequest.from_payload({"DevOpsEnvironmentRequestedEvent": [{"id": "x"}]})


def test_empty_event_list_is_rejected():
    with pytest.raises(ConfigurationError):
        DevOpsEnvironmentRequest.from_payload({"DevOpsEnvironmentRequestedEvent": []})


def test_team_requires_name():
    with pytest.raises(ConfigurationError):
        Team.from_event({"teamId": "t"})
