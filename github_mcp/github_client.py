from __future__ import annotations

import base64
import binascii
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx
import pydantic

from .backend import (
    CommitResult,
    DirectoryEntry,
    FileContent,
    Issue,
    IssueFilters,
    PullRequest,
    PullRequestFilters,
    RepositoryMetadata,
    SearchHit,
)
from .config import Settings
from .errors import BackendError

logger = logging.getLogger(__name__)

GITHUB_API_VERSION = "2022-11-28"
USER_AGENT = "github-mcp-server"


def _ensure_mapping(value: object, *, endpoint: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise BackendError(502, f"Expected JSON object in GitHub response for '{endpoint}'.")
    return value


def _ensure_list(value: object, *, endpoint: str) -> List[Dict[str, Any]]:
    if not isinstance(value, list) or not all(isinstance(item, dict) for item in value):
        raise BackendError(
            502, f"Expected JSON array of objects in GitHub response for '{endpoint}'."
        )
    return value


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict) and isinstance(payload.get("message"), str):
        return payload["message"]
    return response.text.strip() or response.reason_phrase


def _repo_endpoint(owner: str, name: str) -> str:
    # Owner and name are single path segments; "/" and "?" must not escape them.
    return f"/repos/{quote(owner, safe='')}/{quote(name, safe='')}"


def _contents_endpoint(owner: str, name: str, path: str) -> str:
    endpoint = f"{_repo_endpoint(owner, name)}/contents"
    normalized = path.strip("/")
    if normalized:
        endpoint += "/" + quote(normalized, safe="/")
    return endpoint


def _login(payload: Dict[str, Any]) -> Optional[str]:
    user = payload.get("user")
    if isinstance(user, dict):
        return user.get("login")
    return None


def _parse_issue(payload: Dict[str, Any]) -> Issue:
    return Issue(
        number=payload.get("number"),
        title=payload.get("title"),
        state=payload.get("state"),
        author=_login(payload),
        body=payload.get("body"),
        labels=[
            label["name"]
            for label in payload.get("labels") or []
            if isinstance(label, dict) and "name" in label
        ],
        comments=payload.get("comments") or 0,
        html_url=payload.get("html_url"),
        created_at=payload.get("created_at"),
        updated_at=payload.get("updated_at"),
    )


def _parse_pull_request(payload: Dict[str, Any]) -> PullRequest:
    head = payload.get("head") or {}
    base = payload.get("base") or {}
    return PullRequest(
        number=payload.get("number"),
        title=payload.get("title"),
        state=payload.get("state"),
        author=_login(payload),
        draft=bool(payload.get("draft")),
        head_ref=head.get("ref"),
        base_ref=base.get("ref"),
        html_url=payload.get("html_url"),
        created_at=payload.get("created_at"),
    )


def _parse_entry(payload: Dict[str, Any]) -> DirectoryEntry:
    return DirectoryEntry(
        name=payload.get("name"),
        path=payload.get("path"),
        type=payload.get("type"),
        size=payload.get("size") or 0,
        sha=payload.get("sha"),
    )


class GitHubClient:
    """
    GitHub REST API implementation of the `GitHubBackend` capability set.

    One instance owns one `httpx.AsyncClient` (and therefore its connection
    pool) for the lifetime of the process. Every non-success response is
    raised as `BackendError`; there is no retry and no caching here.
    """

    def __init__(
        self,
        token: str,
        *,
        base_url: str = "https://api.github.com",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers={
                "Accept": "application/vnd.github+json",
                "Authorization": f"Bearer {token}",
                "X-GitHub-Api-Version": GITHUB_API_VERSION,
                "User-Agent": USER_AGENT,
            },
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "GitHubClient":
        return cls(
            settings.github_token.get_secret_value(),
            base_url=settings.github_api_url,
            timeout=settings.request_timeout,
        )

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        endpoint: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Any:
        logger.debug("GitHub %s %s params=%s", method, endpoint, params)
        try:
            response = await self._client.request(method, endpoint, params=params, json=json)
        except httpx.HTTPError as exc:
            raise BackendError(None, f"GitHub request to '{endpoint}' failed: {exc}") from exc

        if response.is_error:
            raise BackendError(response.status_code, _error_message(response))
        try:
            return response.json()
        except ValueError as exc:
            raise BackendError(502, f"Invalid JSON in GitHub response for '{endpoint}'.") from exc

    async def get_repository(self, owner: str, name: str) -> RepositoryMetadata:
        endpoint = _repo_endpoint(owner, name)
        payload = _ensure_mapping(await self._request("GET", endpoint), endpoint=endpoint)
        try:
            return RepositoryMetadata(
                full_name=payload.get("full_name") or f"{owner}/{name}",
                description=payload.get("description"),
                default_branch=payload.get("default_branch") or "main",
                private=bool(payload.get("private")),
                html_url=payload.get("html_url"),
                language=payload.get("language"),
                stars=payload.get("stargazers_count") or 0,
                forks=payload.get("forks_count") or 0,
                open_issues=payload.get("open_issues_count") or 0,
            )
        except pydantic.ValidationError as exc:
            raise BackendError(502, f"Unexpected repository payload: {exc}") from exc

    async def list_issues(self, owner: str, name: str, filters: IssueFilters) -> List[Issue]:
        endpoint = f"{_repo_endpoint(owner, name)}/issues"
        rows = _ensure_list(
            await self._request("GET", endpoint, params={"state": filters.state}),
            endpoint=endpoint,
        )
        try:
            # The issues endpoint also returns pull requests.
            return [_parse_issue(row) for row in rows if "pull_request" not in row]
        except pydantic.ValidationError as exc:
            raise BackendError(502, f"Unexpected issue payload: {exc}") from exc

    async def get_issue(self, owner: str, name: str, number: int) -> Issue:
        endpoint = f"{_repo_endpoint(owner, name)}/issues/{number}"
        payload = _ensure_mapping(await self._request("GET", endpoint), endpoint=endpoint)
        try:
            return _parse_issue(payload)
        except pydantic.ValidationError as exc:
            raise BackendError(502, f"Unexpected issue payload: {exc}") from exc

    async def list_pull_requests(
        self, owner: str, name: str, filters: PullRequestFilters
    ) -> List[PullRequest]:
        endpoint = f"{_repo_endpoint(owner, name)}/pulls"
        rows = _ensure_list(
            await self._request("GET", endpoint, params={"state": filters.state}),
            endpoint=endpoint,
        )
        try:
            return [_parse_pull_request(row) for row in rows]
        except pydantic.ValidationError as exc:
            raise BackendError(502, f"Unexpected pull request payload: {exc}") from exc

    async def read_file(
        self, owner: str, name: str, path: str, ref: Optional[str]
    ) -> FileContent:
        endpoint = _contents_endpoint(owner, name, path)
        params = {"ref": ref} if ref else None
        payload = await self._request("GET", endpoint, params=params)
        if isinstance(payload, list):
            raise BackendError(400, f"'{path}' is a directory, not a file.")
        payload = _ensure_mapping(payload, endpoint=endpoint)
        if payload.get("type") != "file":
            raise BackendError(400, f"'{path}' is a {payload.get('type')}, not a file.")

        encoded = payload.get("content") or ""
        if payload.get("encoding") == "base64":
            try:
                content = base64.b64decode(encoded).decode("utf-8")
            except (binascii.Error, UnicodeDecodeError) as exc:
                raise BackendError(415, f"'{path}' is not a UTF-8 text file.") from exc
        else:
            content = encoded

        try:
            return FileContent(
                path=payload.get("path") or path,
                sha=payload.get("sha"),
                size=payload.get("size") or 0,
                content=content,
                ref=ref,
            )
        except pydantic.ValidationError as exc:
            raise BackendError(502, f"Unexpected file payload: {exc}") from exc

    async def list_directory(
        self, owner: str, name: str, path: str, ref: Optional[str]
    ) -> List[DirectoryEntry]:
        endpoint = _contents_endpoint(owner, name, path)
        params = {"ref": ref} if ref else None
        payload = await self._request("GET", endpoint, params=params)
        rows = [payload] if isinstance(payload, dict) else _ensure_list(payload, endpoint=endpoint)
        try:
            return [_parse_entry(row) for row in rows]
        except pydantic.ValidationError as exc:
            raise BackendError(502, f"Unexpected directory payload: {exc}") from exc

    async def search_code(self, owner: str, name: str, query: str) -> List[SearchHit]:
        endpoint = "/search/code"
        payload = _ensure_mapping(
            await self._request("GET", endpoint, params={"q": f"{query} repo:{owner}/{name}"}),
            endpoint=endpoint,
        )
        rows = _ensure_list(payload.get("items") or [], endpoint=endpoint)
        try:
            return [
                SearchHit(
                    name=row.get("name"),
                    path=row.get("path"),
                    sha=row.get("sha"),
                    html_url=row.get("html_url"),
                )
                for row in rows
            ]
        except pydantic.ValidationError as exc:
            raise BackendError(502, f"Unexpected search payload: {exc}") from exc

    async def write_file(
        self,
        owner: str,
        name: str,
        path: str,
        content: str,
        message: str,
        sha: Optional[str] = None,
    ) -> CommitResult:
        endpoint = _contents_endpoint(owner, name, path)
        body: Dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
        }
        if sha:
            body["sha"] = sha
        payload = _ensure_mapping(await self._request("PUT", endpoint, json=body), endpoint=endpoint)

        commit = payload.get("commit") or {}
        written = payload.get("content") or {}
        try:
            return CommitResult(
                path=written.get("path") or path,
                content_sha=written.get("sha"),
                commit_sha=commit.get("sha"),
                commit_url=commit.get("html_url"),
                message=commit.get("message") or message,
            )
        except pydantic.ValidationError as exc:
            raise BackendError(502, f"Unexpected commit payload: {exc}") from exc
