from __future__ import annotations

from typing import Any, Dict

from mcp import types

from ..backend import GitHubBackend, RepositoryMetadata
from ..config import ToolConfig
from . import ToolRegistry
from .repository_helper import REPOSITORY_PROPERTIES, resolve_repository


async def _handle_get_repo_info(
    arguments: Dict[str, Any],
    backend: GitHubBackend,
    config: ToolConfig,
) -> RepositoryMetadata:
    owner, repo = resolve_repository(arguments, config)
    return await backend.get_repository(owner, repo)


def register_tools(registry: ToolRegistry) -> None:
    repo_info_schema: Dict[str, Any] = {
        "type": "object",
        "properties": dict(REPOSITORY_PROPERTIES),
    }

    registry.add_tool(
        types.Tool(
            name="get_repo_info",
            description="Get repository metadata: description, default branch, stars, forks and open issue count.",
            inputSchema=repo_info_schema,
        ),
        _handle_get_repo_info,
    )
