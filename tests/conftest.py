"""Shared fixtures for workflow-secrets-check tests."""
import asyncio
import io

import pytest

from workflow_secrets_check.secrets.domains.config_loader import CheckConfig
from workflow_secrets_check.secrets.domains.github_client import NotFoundError
from workflow_secrets_check.secrets.domains.models import (
    DirectoryEntry,
    FileContent,
    OrganizationSecret,
    RepositoryDescriptor,
    SecretVisibility,
)
from workflow_secrets_check.secrets.domains.reporter import ActionsReporter

ENV_VARIABLES = (
    "GITHUB_TOKEN",
    "GITHUB_REPOSITORY",
    "GITHUB_API_URL",
    "INPUT_GITHUBTOKEN",
    "INPUT_REF",
    "INPUT_PREDEFINEDSECRETS",
    "INPUT_OPTIONALSECRETS",
    "INPUT_FORBIDDENSECRETS",
    "WORKFLOW_SECRETS_CHECK_CONFIG",
)


class FakeGitHubClient:
    """In-memory stand-in for GitHubClient that records every call."""

    def __init__(self, repo, org_secrets=(), selected=None, repo_secrets=(), files=None,
                 entries=None, delays=None):
        self.repo = repo
        self.org_secrets = list(org_secrets)
        self.selected = selected or {}
        self.repo_secrets = list(repo_secrets)
        self.files = files or {}
        self.entries = entries
        self.delays = delays or {}
        self.calls = []
        self.cancelled = []

    async def fetch_repository(self, owner, repo):
        self.calls.append(("fetch_repository", owner, repo))
        return self.repo

    async def list_organization_secrets(self, org):
        self.calls.append(("list_organization_secrets", org))
        return self.org_secrets

    async def list_selected_repositories_for_secret(self, org, secret_name):
        self.calls.append(("list_selected_repositories_for_secret", org, secret_name))
        return self.selected.get(secret_name, [])

    async def list_repository_secrets(self, owner, repo):
        self.calls.append(("list_repository_secrets", owner, repo))
        return self.repo_secrets

    async def list_directory(self, owner, repo, path, ref=None):
        self.calls.append(("list_directory", owner, repo, path, ref))
        if self.entries is not None:
            return self.entries
        return [
            DirectoryEntry(name=file_path.rsplit("/", 1)[-1], path=file_path, type="file")
            for file_path in self.files
        ]

    async def fetch_file_content(self, owner, repo, path, ref=None):
        self.calls.append(("fetch_file_content", owner, repo, path, ref))
        try:
            await asyncio.sleep(self.delays.get(path, 0))
        except asyncio.CancelledError:
            self.cancelled.append(path)
            raise
        if path not in self.files:
            raise NotFoundError(f"GET /repos/{owner}/{repo}/contents/{path} returned 404: Not Found")
        return FileContent(content=self.files[path])

    def called(self, name):
        return [call for call in self.calls if call[0] == name]


@pytest.fixture
def clean_env(monkeypatch):
    """Remove runner and action input variables from the environment."""
    for variable in ENV_VARIABLES:
        monkeypatch.delenv(variable, raising=False)
    return monkeypatch


@pytest.fixture
def user_repo():
    return RepositoryDescriptor(
        owner="octocat",
        name="hello-world",
        full_name="octocat/hello-world",
        owner_type="User",
        visibility="public",
    )


@pytest.fixture
def org_repo():
    return RepositoryDescriptor(
        owner="octo-org",
        name="service",
        full_name="octo-org/service",
        owner_type="Organization",
        visibility="private",
    )


@pytest.fixture
def org_secrets():
    return [
        OrganizationSecret("ORG_ALL"),
        OrganizationSecret("ORG_PRIVATE", visibility=SecretVisibility.PRIVATE),
        OrganizationSecret("ORG_SELECTED", visibility=SecretVisibility.SELECTED),
    ]


@pytest.fixture
def output():
    return io.StringIO()


@pytest.fixture
def reporter(output):
    return ActionsReporter(stream=output)


@pytest.fixture
def make_config():
    def _make(**kwargs):
        kwargs.setdefault("github_token", "ghs_test")
        kwargs.setdefault("repository", "octocat/hello-world")
        return CheckConfig(**kwargs)
    return _make


@pytest.fixture
def fake_client():
    """Factory for FakeGitHubClient instances."""
    return FakeGitHubClient
