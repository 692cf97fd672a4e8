"""GitHub REST API client wrapper."""
import binascii
import logging
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import httpx

from .models import (
    DirectoryEntry,
    FileContent,
    OrganizationSecret,
    RepositoryDescriptor,
    SecretVisibility,
)

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"
API_VERSION = "2022-11-28"
PAGE_SIZE = 100
HTTP_TIMEOUT = 30.0


class TransportError(Exception):
    """A GitHub API call failed."""
    pass


class NotFoundError(TransportError):
    """The requested repository, path or secret does not exist or is not visible."""
    pass


class GitHubClient:
    """Async wrapper around the GitHub REST API endpoints the check needs."""

    def __init__(
        self,
        token: str,
        api_url: str = DEFAULT_API_URL,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self._token = token
        self._api_url = api_url.rstrip("/")
        self._client = http_client

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy-initialize client."""
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self._api_url, timeout=HTTP_TIMEOUT)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def _headers(self) -> Dict[str, str]:
        return {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {self._token}",
            "X-GitHub-Api-Version": API_VERSION,
        }

    async def _get(self, url: str, params: Optional[Dict[str, Any]] = None) -> httpx.Response:
        """
        Issue a GET request and map failures onto TransportError.

        Raises:
            NotFoundError: If the API answers 404
            TransportError: On any other error status or connection failure
        """
        logger.debug(f"GET {url} {params or ''}")
        try:
            response = await self.client.get(url, params=params, headers=self._headers())
        except httpx.HTTPError as e:
            raise TransportError(f"GET {url} failed: {e}") from e

        if response.status_code == 404:
            raise NotFoundError(f"GET {url} returned 404: {_error_message(response)}")
        if response.is_error:
            raise TransportError(
                f"GET {url} returned {response.status_code}: {_error_message(response)}"
            )
        return response

    async def _get_json(
        self, url: str, params: Optional[Dict[str, Any]] = None
    ) -> Tuple[Any, httpx.Response]:
        """GET `url` and parse the body; a malformed body raises TransportError."""
        response = await self._get(url, params=params)
        try:
            return response.json(), response
        except ValueError as e:
            raise TransportError(f"GET {url} returned a malformed JSON body: {e}") from e

    async def _paginate(self, url: str, key: str, params: Optional[Dict[str, Any]] = None) -> List[Any]:
        """Collect `key` items across every page, following `Link: rel="next"`."""
        items: List[Any] = []
        next_url: Optional[str] = url
        next_params: Optional[Dict[str, Any]] = dict(params or {})
        next_params["per_page"] = PAGE_SIZE

        while next_url:
            data, response = await self._get_json(next_url, params=next_params)
            if not isinstance(data, dict):
                raise TransportError(f"GET {next_url} returned an unexpected payload")
            items.extend(data.get(key) or [])
            next_url = response.links.get("next", {}).get("url")
            # The next link already carries the query string
            next_params = None

        return items

    async def fetch_repository(self, owner: str, repo: str) -> RepositoryDescriptor:
        data, _ = await self._get_json(f"/repos/{owner}/{repo}")
        if not isinstance(data, dict):
            raise TransportError(f"GET /repos/{owner}/{repo} returned an unexpected payload")
        owner_data = data.get("owner") or {}
        return RepositoryDescriptor(
            owner=owner_data.get("login", owner),
            name=data.get("name", repo),
            full_name=data.get("full_name", f"{owner}/{repo}"),
            owner_type=owner_data.get("type") or "User",
            visibility=(data.get("visibility") or ("private" if data.get("private") else "public")).lower(),
        )

    async def list_organization_secrets(self, org: str) -> List[OrganizationSecret]:
        secrets = await self._paginate(f"/orgs/{org}/actions/secrets", "secrets")
        return [
            OrganizationSecret(
                name=secret["name"],
                visibility=SecretVisibility.parse(secret.get("visibility")),
            )
            for secret in secrets
        ]

    async def list_selected_repositories_for_secret(self, org: str, secret_name: str) -> List[str]:
        repositories = await self._paginate(
            f"/orgs/{org}/actions/secrets/{secret_name}/repositories",
            "repositories",
        )
        return [repository["full_name"] for repository in repositories]

    async def list_repository_secrets(self, owner: str, repo: str) -> List[str]:
        secrets = await self._paginate(f"/repos/{owner}/{repo}/actions/secrets", "secrets")
        return [secret["name"] for secret in secrets]

    async def list_directory(
        self, owner: str, repo: str, path: str, ref: Optional[str] = None
    ) -> List[DirectoryEntry]:
        """
        List a repository directory.

        Raises:
            NotFoundError: If the directory does not exist at `ref`
            TransportError: If `path` is not a directory
        """
        params = {"ref": ref} if ref else None
        data, _ = await self._get_json(f"/repos/{owner}/{repo}/contents/{quote(path)}", params=params)
        if not isinstance(data, list):
            raise TransportError(f"{path} in {owner}/{repo} is not a directory")

        return [
            DirectoryEntry(name=entry["name"], path=entry["path"], type=entry["type"])
            for entry in data
        ]

    async def fetch_file_content(
        self, owner: str, repo: str, path: str, ref: Optional[str] = None
    ) -> FileContent:
        """
        Fetch one file from the contents API.

        Raises:
            NotFoundError: If the file does not exist at `ref`
            TransportError: If `path` is not a file or its content is not
                valid base64-encoded UTF-8
        """
        params = {"ref": ref} if ref else None
        data, _ = await self._get_json(f"/repos/{owner}/{repo}/contents/{quote(path)}", params=params)
        if not isinstance(data, dict) or data.get("type", "file") != "file":
            raise TransportError(f"{path} in {owner}/{repo} is not a file")

        content = FileContent(content=data.get("content") or "", encoding=data.get("encoding") or "")
        try:
            content.decode()
        except (binascii.Error, UnicodeDecodeError) as e:
            raise TransportError(f"{path} in {owner}/{repo} could not be decoded: {e}") from e
        return content


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.reason_phrase
    if isinstance(data, dict) and data.get("message"):
        return data["message"]
    return response.reason_phrase
