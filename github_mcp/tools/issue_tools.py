from __future__ import annotations

from typing import Any, Dict, List

from mcp import types

from ..backend import GitHubBackend, Issue, IssueFilters, PullRequest, PullRequestFilters
from ..config import ToolConfig
from . import ToolRegistry
from .repository_helper import REPOSITORY_PROPERTIES, STATE_PROPERTY, resolve_repository


async def _handle_list_issues(
    arguments: Dict[str, Any],
    backend: GitHubBackend,
    config: ToolConfig,
) -> List[Issue]:
    owner, repo = resolve_repository(arguments, config)
    filters = IssueFilters(state=arguments.get("state") or "open")
    return await backend.list_issues(owner, repo, filters)


async def _handle_get_issue(
    arguments: Dict[str, Any],
    backend: GitHubBackend,
    config: ToolConfig,
) -> Issue:
    owner, repo = resolve_repository(arguments, config)
    return await backend.get_issue(owner, repo, int(arguments["issue_number"]))


async def _handle_list_pull_requests(
    arguments: Dict[str, Any],
    backend: GitHubBackend,
    config: ToolConfig,
) -> List[PullRequest]:
    owner, repo = resolve_repository(arguments, config)
    filters = PullRequestFilters(state=arguments.get("state") or "open")
    return await backend.list_pull_requests(owner, repo, filters)


def register_tools(registry: ToolRegistry) -> None:
    list_issues_schema: Dict[str, Any] = {
        "type": "object",
        "properties": {
            **REPOSITORY_PROPERTIES,
            "state": STATE_PROPERTY,
        },
    }

    get_issue_schema: Dict[str, Any] = {
        "type": "object",
        "properties": {
            **REPOSITORY_PROPERTIES,
            "issue_number": {"type": "integer", "description": "Issue number."},
        },
        "required": ["issue_number"],
    }

    list_pull_requests_schema: Dict[str, Any] = {
        "type": "object",
        "properties": {
            **REPOSITORY_PROPERTIES,
            "state": STATE_PROPERTY,
        },
    }

    registry.add_tool(
        types.Tool(
            name="list_issues",
            description="List issues in a repository, optionally filtered by state.",
            inputSchema=list_issues_schema,
        ),
        _handle_list_issues,
    )
    registry.add_tool(
        types.Tool(
            name="get_issue",
            description="Get a single issue by number.",
            inputSchema=get_issue_schema,
        ),
        _handle_get_issue,
    )
    registry.add_tool(
        types.Tool(
            name="list_pull_requests",
            description="List pull requests in a repository, optionally filtered by state.",
            inputSchema=list_pull_requests_schema,
        ),
        _handle_list_pull_requests,
    )
