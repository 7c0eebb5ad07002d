"""
Capability interface to the source-hosting backend.

Tool handlers only ever talk to an object satisfying `GitHubBackend`; the
concrete HTTP implementation lives in `github_client`, tests use doubles.
Every method may raise `errors.BackendError`.
"""

from __future__ import annotations

from typing import List, Literal, Optional, Protocol

from pydantic import BaseModel, Field

StateFilter = Literal["open", "closed", "all"]


class RepositoryMetadata(BaseModel):
    full_name: str
    description: Optional[str] = None
    default_branch: str = "main"
    private: bool = False
    html_url: Optional[str] = None
    language: Optional[str] = None
    stars: int = 0
    forks: int = 0
    open_issues: int = 0


class Issue(BaseModel):
    number: int
    title: str
    state: str
    author: Optional[str] = None
    body: Optional[str] = None
    labels: List[str] = Field(default_factory=list)
    comments: int = 0
    html_url: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class PullRequest(BaseModel):
    number: int
    title: str
    state: str
    author: Optional[str] = None
    draft: bool = False
    head_ref: Optional[str] = None
    base_ref: Optional[str] = None
    html_url: Optional[str] = None
    created_at: Optional[str] = None


class FileContent(BaseModel):
    path: str
    sha: str
    size: int
    content: str
    ref: Optional[str] = None


class DirectoryEntry(BaseModel):
    name: str
    path: str
    type: str
    size: int = 0
    sha: Optional[str] = None


class SearchHit(BaseModel):
    name: str
    path: str
    sha: Optional[str] = None
    html_url: Optional[str] = None


class CommitResult(BaseModel):
    path: str
    content_sha: Optional[str] = None
    commit_sha: str
    commit_url: Optional[str] = None
    message: str


class IssueFilters(BaseModel):
    state: StateFilter = "open"


class PullRequestFilters(BaseModel):
    state: StateFilter = "open"


class GitHubBackend(Protocol):
    async def get_repository(self, owner: str, name: str) -> RepositoryMetadata: ...

    async def list_issues(self, owner: str, name: str, filters: IssueFilters) -> List[Issue]: ...

    async def get_issue(self, owner: str, name: str, number: int) -> Issue: ...

    async def list_pull_requests(
        self, owner: str, name: str, filters: PullRequestFilters
    ) -> List[PullRequest]: ...

    async def read_file(
        self, owner: str, name: str, path: str, ref: Optional[str]
    ) -> FileContent: ...

    async def list_directory(
        self, owner: str, name: str, path: str, ref: Optional[str]
    ) -> List[DirectoryEntry]: ...

    async def search_code(self, owner: str, name: str, query: str) -> List[SearchHit]: ...

    async def write_file(
        self,
        owner: str,
        name: str,
        path: str,
        content: str,
        message: str,
        sha: Optional[str] = None,
    ) -> CommitResult: ...
