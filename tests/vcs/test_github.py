"""Tests for the GitHub VCS provider."""

import base64
import json

import httpx
import pytest

from repo_parity_guard.errors import ConfigurationError, FetchError
from repo_parity_guard.normalize import Branch, CustomProperty, PullRequestState, Team, Webhook
from repo_parity_guard.vcs.github import GitHubProvider

API = "https://api.github.com"
REPO_PATH = "/repos/acme/payments"


def _provider(client, **kwargs):
    return GitHubProvider(token="ghp_test", client=client, **kwargs)


def test_github_provider_requires_token():
    """Test that GitHubProvider requires a token."""
    with pytest.raises(ConfigurationError, match="GITHUB_TOKEN is required"):
        GitHubProvider()
    with pytest.raises(ConfigurationError, match="GITHUB_TOKEN is required"):
        GitHubProvider(token="")


def test_github_provider_identity():
    provider = GitHubProvider(token="ghp_test")
    assert provider.get_platform_name() == "github"
    assert provider.validate_credentials() is True
    assert provider.get_repository_url("acme", "payments") == "https://github.com/acme/payments"


def test_graphql_url():
    assert GitHubProvider(token="t").graphql_url == "https://api.github.com/graphql"
    enterprise = GitHubProvider(token="t", api_url="https://ghe.example.com/api/v3/")
    assert enterprise.graphql_url == "https://ghe.example.com/api/graphql"


def test_headers(mock_client):
    client, recorder = mock_client(lambda r: httpx.Response(200, json=[]))
    _provider(client).list_tags("acme", "payments")
    headers = recorder.requests[0].headers
    assert headers["Authorization"] == "Bearer ghp_test"
    assert headers["Accept"] == "application/vnd.github+json"
    assert headers["X-GitHub-Api-Version"] == "2022-11-28"


def test_default_branch(mock_client):
    client, recorder = mock_client(
        lambda r: httpx.Response(200, json={"default_branch": "main"})
    )
    assert _provider(client).get_default_branch("acme", "payments") == "main"
    assert recorder.paths() == [REPO_PATH]


def test_list_branches_pages(mock_client):
    def handler(request):
        page = int(request.url.params["page"])
        if page == 1:
            return httpx.Response(200, json=[{"name": f"b{i}"} for i in range(100)])
        return httpx.Response(200, json=[{"name": "main"}])

    client, recorder = mock_client(handler)
    branches = _provider(client).list_branches("acme", "payments")

    assert len(branches) == 101
    assert branches[-1] == Branch("main")
    assert len(recorder.requests) == 2


def test_count_commits_rest(mock_client):
    def handler(request):
        assert request.url.params["sha"] == "main"
        return httpx.Response(200, json=[{"sha": "x"}] * 7)

    client, _ = mock_client(handler)
    assert _provider(client).count_commits("acme", "payments", "main") == 7


def test_count_commits_graphql(mock_client):
    """Test the history total is read from a single GraphQL query."""

    def handler(request):
        assert request.url.path == "/graphql"
        payload = json.loads(request.content)
        assert payload["variables"] == {
            "owner": "acme",
            "name": "payments",
            "ref": "refs/heads/main",
        }
        return httpx.Response(
            200,
            json={"data": {"repository": {"ref": {"target": {"history": {"totalCount": 4321}}}}}},
        )

    client, recorder = mock_client(handler)
    assert _provider(client).count_commits_graphql("acme", "payments", "main") == 4321
    assert len(recorder.requests) == 1


def test_count_commits_graphql_missing_branch(mock_client):
    client, _ = mock_client(
        lambda r: httpx.Response(200, json={"data": {"repository": {"ref": None}}})
    )
    with pytest.raises(FetchError, match="branch gone not found"):
        _provider(client).count_commits_graphql("acme", "payments", "gone")


def test_graphql_errors_raise(mock_client):
    client, _ = mock_client(
        lambda r: httpx.Response(200, json={"errors": [{"message": "Bad credentials"}]})
    )
    with pytest.raises(FetchError, match="GitHub API Errors"):
        _provider(client).count_commits_graphql("acme", "payments", "main")


def test_get_last_commit(mock_client):
    def handler(request):
        assert request.url.params["per_page"] == "1"
        return httpx.Response(
            200,
            json=[
                {
                    "sha": "a" * 40,
                    "commit": {"author": {"name": "Jane Doe", "date": "2023-11-14T22:13:20Z"}},
                    "author": {"login": "jdoe"},
                }
            ],
        )

    client, _ = mock_client(handler)
    commit = _provider(client).get_last_commit("acme", "payments", "main")
    assert commit.sha == "a" * 40
    assert commit.author == "Jane Doe"
    assert commit.date == 1700000000000


def test_count_pull_requests_splits_closed(mock_client):
    """Test closed requests split into merged and declined by merged_at."""

    def handler(request):
        if request.url.params["state"] == "open":
            return httpx.Response(200, json=[{"state": "open"}] * 3)
        return httpx.Response(
            200,
            json=[{"state": "closed", "merged_at": "2024-01-01T00:00:00Z"}] * 5
            + [{"state": "closed", "merged_at": None}] * 2,
        )

    client, _ = mock_client(handler)
    assert _provider(client).count_pull_requests("acme", "payments") == {
        PullRequestState.OPEN: 3,
        PullRequestState.MERGED: 5,
        PullRequestState.DECLINED: 2,
    }


def test_list_teams_drops_inherited(mock_client):
    client, _ = mock_client(
        lambda r: httpx.Response(
            200,
            json=[
                {"name": "payments-dev", "permission": "push"},
                {"name": "org-admins", "permission": "admin", "inherited": True},
            ],
        )
    )
    assert _provider(client).list_teams("acme", "payments") == [Team("payments-dev", "push")]


def test_list_teams_not_found_is_empty(mock_client):
    client, _ = mock_client(lambda r: httpx.Response(404, json={"message": "Not Found"}))
    assert _provider(client).list_teams("acme", "payments") == []


def test_list_webhooks_deduplicates(mock_client):
    hook = {"config": {"url": "https://jenkins.example.com/hook"}}
    client, _ = mock_client(lambda r: httpx.Response(200, json=[hook, hook]))
    assert _provider(client).list_webhooks("acme", "payments") == [
        Webhook("https://jenkins.example.com/hook")
    ]


def test_fetch_codeowners_decodes_content(mock_client):
    encoded = base64.b64encode(b"* @acme/platform\n").decode()

    def handler(request):
        assert request.url.params["ref"] == "main"
        if request.url.path == f"{REPO_PATH}/contents/.github/CODEOWNERS":
            return httpx.Response(200, json={"content": encoded, "encoding": "base64"})
        return httpx.Response(404, json={"message": "Not Found"})

    client, _ = mock_client(handler)
    texts = _provider(client).fetch_codeowners(
        "acme", "payments", "main", (".github/CODEOWNERS", "CODEOWNERS")
    )
    assert texts == ["* @acme/platform\n"]


def test_custom_properties(mock_client):
    client, recorder = mock_client(
        lambda r: httpx.Response(200, json=[{"property_name": "BSN", "value": "Payments"}])
    )
    assert _provider(client).get_custom_properties("acme", "payments") == [
        CustomProperty("BSN", "Payments")
    ]
    assert recorder.paths() == [f"{REPO_PATH}/properties/values"]


def test_custom_properties_forbidden_is_empty(mock_client):
    client, _ = mock_client(lambda r: httpx.Response(403, json={"message": "Forbidden"}))
    assert _provider(client).get_custom_properties("acme", "payments") == []


def test_post_issue_comment(mock_client):
    def handler(request):
        assert request.method == "POST"
        assert request.url.path == "/repos/acme/migrations/issues/12/comments"
        assert json.loads(request.content) == {"body": "report"}
        return httpx.Response(201, json={"html_url": "https://github.com/c/1"})

    client, _ = mock_client(handler)
    url = _provider(client).post_issue_comment("acme/migrations", 12, "report")
    assert url == "https://github.com/c/1"


def test_list_org_repositories(mock_client):
    client, recorder = mock_client(
        lambda r: httpx.Response(200, json=[{"full_name": "acme/payments"}])
    )
    repos = _provider(client).list_org_repositories("acme")

    assert repos == [{"full_name": "acme/payments"}]
    assert recorder.paths() == ["/orgs/acme/repos"]
    assert recorder.requests[0].url.params["sort"] == "created"
