"""Tests for the Bitbucket Server VCS provider."""

import base64

import httpx
import pytest

from repo_parity_guard.errors import ConfigurationError, FetchError
from repo_parity_guard.normalize import Branch, PullRequestState, Webhook
from repo_parity_guard.vcs.bitbucket import BitbucketServerProvider

BASE = "https://bitbucket.example.com"
REPO_PATH = "/rest/api/1.0/projects/PROJ/repos/payments"


def _page(values, is_last=True, next_start=None):
    body = {"values": values, "isLastPage": is_last}
    if next_start is not None:
        body["nextPageStart"] = next_start
    return httpx.Response(200, json=body)


def _provider(client, **kwargs):
    kwargs.setdefault("token", "bb_token")
    return BitbucketServerProvider(base_url=BASE + "/", client=client, **kwargs)


def test_requires_base_url():
    with pytest.raises(ConfigurationError, match="BITBUCKET_BASEURL"):
        BitbucketServerProvider(token="t")


def test_requires_credentials():
    """Test a user without a password is not enough."""
    with pytest.raises(ConfigurationError, match="BITBUCKET_TOKEN"):
        BitbucketServerProvider(base_url=BASE, user="svc")


def test_identity():
    provider = BitbucketServerProvider(base_url=BASE + "/", token="t")
    assert provider.get_platform_name() == "bitbucket"
    assert provider.validate_credentials() is True
    assert (
        provider.get_repository_url("PROJ", "payments")
        == f"{BASE}/projects/PROJ/repos/payments/browse"
    )


def test_bearer_token_header(mock_client):
    client, recorder = mock_client(lambda r: _page([]))
    _provider(client).list_tags("PROJ", "payments")
    assert recorder.requests[0].headers["Authorization"] == "Bearer bb_token"


def test_basic_auth_without_token(mock_client):
    client, recorder = mock_client(lambda r: _page([]))
    _provider(client, token=None, user="svc", password="pw").list_tags("PROJ", "payments")
    expected = base64.b64encode(b"svc:pw").decode()
    assert recorder.requests[0].headers["Authorization"] == f"Basic {expected}"


def test_list_branches_walks_pages(mock_client):
    """Test branches are normalized across offset pages."""

    def handler(request):
        assert request.url.path == f"{REPO_PATH}/branches"
        if request.url.params["start"] == "0":
            return _page(
                [{"displayId": "main", "isDefault": True}], is_last=False, next_start=1
            )
        return _page([{"displayId": "dev", "isDefault": False}])

    client, recorder = mock_client(handler)
    branches = _provider(client).list_branches("PROJ", "payments")

    assert branches == [Branch("main"), Branch("dev")]
    assert branches[0].is_default is True
    assert len(recorder.requests) == 2


def test_default_branch(mock_client):
    client, _ = mock_client(lambda r: httpx.Response(200, json={"displayId": "develop"}))
    assert _provider(client).get_default_branch("PROJ", "payments") == "develop"


@pytest.mark.parametrize("response", [httpx.Response(204), httpx.Response(404, json={})])
def test_default_branch_of_empty_repository(mock_client, response):
    client, _ = mock_client(lambda r: response)
    assert _provider(client).get_default_branch("PROJ", "payments") is None


def test_count_commits_uses_until(mock_client):
    def handler(request):
        assert request.url.params["until"] == "main"
        start = int(request.url.params["start"])
        if start == 0:
            return _page([{"id": str(i)} for i in range(100)], is_last=False, next_start=100)
        return _page([{"id": "x"}] * 5)

    client, _ = mock_client(handler)
    assert _provider(client).count_commits("PROJ", "payments", "main") == 105


def test_get_last_commit(mock_client):
    def handler(request):
        assert request.url.params["limit"] == "1"
        return _page(
            [
                {
                    "id": "a" * 40,
                    "author": {"name": "jdoe", "displayName": "Jane Doe"},
                    "authorTimestamp": 1700000000000,
                }
            ]
        )

    client, _ = mock_client(handler)
    commit = _provider(client).get_last_commit("PROJ", "payments", "main")
    assert commit.sha == "a" * 40
    assert commit.author == "Jane Doe"


def test_get_last_commit_empty_branch(mock_client):
    client, _ = mock_client(lambda r: _page([]))
    assert _provider(client).get_last_commit("PROJ", "payments", "main") is None


def test_count_pull_requests_by_state(mock_client):
    """Test OPEN=3, MERGED=5, DECLINED=2 are counted per state."""
    sizes = {"OPEN": 3, "MERGED": 5, "DECLINED": 2}

    def handler(request):
        state = request.url.params["state"]
        return _page([{"state": state}] * sizes[state])

    client, recorder = mock_client(handler)
    counts = _provider(client).count_pull_requests("PROJ", "payments")

    assert counts == {
        PullRequestState.OPEN: 3,
        PullRequestState.MERGED: 5,
        PullRequestState.DECLINED: 2,
    }
    assert [r.url.params["state"] for r in recorder.requests] == ["OPEN", "MERGED", "DECLINED"]


def test_webhooks(mock_client):
    client, _ = mock_client(
        lambda r: _page([{"name": "Jenkins", "url": "https://jenkins.example.com/hook"}])
    )
    assert _provider(client).list_webhooks("PROJ", "payments") == [
        Webhook("https://jenkins.example.com/hook")
    ]


def test_webhooks_forbidden_is_empty(mock_client):
    client, _ = mock_client(lambda r: httpx.Response(403, json={"errors": []}))
    assert _provider(client).list_webhooks("PROJ", "payments") == []


def test_webhooks_other_errors_propagate(mock_client):
    client, _ = mock_client(lambda r: httpx.Response(401, json={"errors": []}))
    with pytest.raises(FetchError):
        _provider(client).list_webhooks("PROJ", "payments")


def test_fetch_codeowners_skips_missing_paths(mock_client):
    """Test only the files that exist are returned, read at the branch ref."""

    def handler(request):
        assert request.url.params["at"] == "refs/heads/main"
        if request.url.path.endswith("raw/CODEOWNERS"):
            return httpx.Response(200, text="* @platform\n")
        return httpx.Response(404, text="not found")

    client, recorder = mock_client(handler)
    texts = _provider(client).fetch_codeowners(
        "PROJ", "payments", "main", (".github/CODEOWNERS", "CODEOWNERS")
    )

    assert texts == ["* @platform\n"]
    assert len(recorder.requests) == 2


def test_list_repositories_pages_server_wide(mock_client):
    """Test all repositories are walked by offset when no project is given."""

    def handler(request):
        if request.url.params["start"] == "0":
            return _page([{"slug": "a"}], is_last=False, next_start=1)
        return _page([{"slug": "b", "archived": True}])

    client, recorder = mock_client(handler)
    repos = _provider(client).list_repositories()

    assert [repo["slug"] for repo in repos] == ["a", "b"]
    assert recorder.paths() == ["/rest/api/1.0/repos"] * 2


def test_list_repositories_of_project(mock_client):
    client, recorder = mock_client(lambda r: _page([]))
    assert _provider(client).list_repositories("PROJ") == []
    assert recorder.paths() == ["/rest/api/1.0/projects/PROJ/repos"]
