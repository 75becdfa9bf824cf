"""
Tests for reading expected repository state.
"""

import json
from unittest.mock import patch

import pytest

from repo_parity_guard.config import Settings
from repo_parity_guard.errors import ConfigurationError
from repo_parity_guard.expectations import (
    ProjectExpectations,
    expectations_clone_url,
    expected_properties,
    fetch_expectations,
    find_project,
    find_repository_entry,
    load_expectations,
    parse_document,
)
from repo_parity_guard.metrics.team_access import ExpectedTeam

TEAMS_DOCUMENT = {
    "teams": [
        {
            "Projectkey": "PROJ",
            "Roles": {"RW": [{"name": "payments-dev"}], "admin": ["platform"]},
            "CodeOwners": ["payments-dev", "@security"],
            "Webhook": "https://jenkins.example.com/hook",
        },
        {"ProjectKey": "OTHER", "Roles": {}},
    ]
}


@pytest.fixture
def expectation_root(tmp_path):
    (tmp_path / "teams").mkdir()
    (tmp_path / "teams" / "teams.json").write_text(json.dumps(TEAMS_DOCUMENT))
    (tmp_path / "repos").mkdir()
    (tmp_path / "repos" / "PROJ_repos.json").write_text(
        json.dumps([{"Name": "payments", "BSN": "Payments", "ICEBID": 1234, "Owner": "x"}])
    )
    return tmp_path


def test_parse_json_and_yaml():
    assert parse_document('{"a": 1}', "teams.json") == {"a": 1}
    assert parse_document("teams:\n  - Projectkey: PROJ\n", "teams.yml") == {
        "teams": [{"Projectkey": "PROJ"}]
    }


@pytest.mark.parametrize(
    ("text", "name"), [("{broken", "teams.json"), ("a: [unclosed", "teams.yaml")]
)
def test_unparseable_document(text, name):
    with pytest.raises(ConfigurationError, match=f"Cannot parse {name}"):
        parse_document(text, name)


def test_find_project_is_case_insensitive():
    assert find_project(TEAMS_DOCUMENT, "proj")["Webhook"] == "https://jenkins.example.com/hook"
    assert find_project(TEAMS_DOCUMENT["teams"], "other") is not None
    assert find_project(TEAMS_DOCUMENT, "MISSING") is None
    assert find_project("not a document", "PROJ") is None


def test_find_repository_entry():
    data = {"repos": [{"name": "Payments"}, {"Name": "ledger"}]}
    assert find_repository_entry(data, "payments") == {"name": "Payments"}
    assert find_repository_entry(data, "unknown") is None


def test_expected_properties_only_present_keys():
    assert expected_properties({"Name": "x", "bsn": "Payments"}) == {"BSN": "Payments"}
    assert expected_properties({"ICEBID": 12, "BSN": None}) == {"BSN": None, "ICEBID": "12"}
    assert expected_properties(None) == {}


def test_load_expectations(expectation_root):
    expectations = load_expectations(expectation_root, Settings(), "PROJ", "payments")

    assert expectations.teams == [
        ExpectedTeam("payments-dev", "push"),
        ExpectedTeam("platform", "admin"),
    ]
    assert expectations.codeowners == ["@payments-dev", "@security"]
    assert expectations.webhook == "https://jenkins.example.com/hook"
    assert expectations.properties == {"BSN": "Payments", "ICEBID": "1234"}


def test_unknown_project_gives_empty_grants(expectation_root):
    expectations = load_expectations(expectation_root, Settings(), "NOPE", "payments")
    assert expectations.teams == []
    assert expectations.webhook is None
    assert expectations.properties == {}


def test_missing_document_gives_empty_expectations(tmp_path):
    assert load_expectations(tmp_path, Settings(), "PROJ", "x") == ProjectExpectations.empty()


def test_expectations_clone_url():
    assert expectations_clone_url(Settings()) is None
    assert (
        expectations_clone_url(Settings(expectations_repo="acme/access", github_token="gh"))
        == "https://gh@github.com/acme/access.git"
    )
    assert (
        expectations_clone_url(Settings(expectations_repo="git@github.com:acme/access.git"))
        == "git@github.com:acme/access.git"
    )


def test_fetch_expectations_without_repo():
    assert fetch_expectations(Settings(), "PROJ", "payments") is None


def test_fetch_expectations_clones(expectation_root):
    """Test the configured repository is cloned and read."""
    clone = patch("repo_parity_guard.expectations.temporary_clone")
    with clone as temporary_clone:
        temporary_clone.return_value.__enter__.return_value = expectation_root
        expectations = fetch_expectations(
            Settings(expectations_repo="acme/access"), "PROJ", "payments"
        )

    assert temporary_clone.call_args.args == ("https://github.com/acme/access.git",)
    assert expectations.webhook == "https://jenkins.example.com/hook"
