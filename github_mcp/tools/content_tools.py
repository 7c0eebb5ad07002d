from __future__ import annotations

from typing import Any, Dict, List

from mcp import types

from ..backend import CommitResult, DirectoryEntry, FileContent, GitHubBackend, SearchHit
from ..config import ToolConfig
from . import ToolRegistry
from .repository_helper import REPOSITORY_PROPERTIES, resolve_repository


async def _handle_get_file_contents(
    arguments: Dict[str, Any],
    backend: GitHubBackend,
    config: ToolConfig,
) -> FileContent:
    owner, repo = resolve_repository(arguments, config)
    return await backend.read_file(owner, repo, arguments["path"], arguments.get("ref"))


async def _handle_list_repository_files(
    arguments: Dict[str, Any],
    backend: GitHubBackend,
    config: ToolConfig,
) -> List[DirectoryEntry]:
    owner, repo = resolve_repository(arguments, config)
    # An omitted path lists the repository root.
    path = arguments.get("path") or ""
    return await backend.list_directory(owner, repo, path, arguments.get("ref"))


async def _handle_search_code(
    arguments: Dict[str, Any],
    backend: GitHubBackend,
    config: ToolConfig,
) -> List[SearchHit]:
    owner, repo = resolve_repository(arguments, config)
    return await backend.search_code(owner, repo, arguments["query"])


async def _handle_create_or_update_file(
    arguments: Dict[str, Any],
    backend: GitHubBackend,
    config: ToolConfig,
) -> CommitResult:
    owner, repo = resolve_repository(arguments, config)
    return await backend.write_file(
        owner,
        repo,
        arguments["path"],
        arguments["content"],
        arguments["message"],
        sha=arguments.get("sha"),
    )


def register_tools(registry: ToolRegistry) -> None:
    ref_property: Dict[str, Any] = {
        "type": "string",
        "description": "Branch, tag or commit SHA. Defaults to the repository's default branch.",
    }

    file_contents_schema: Dict[str, Any] = {
        "type": "object",
        "properties": {
            **REPOSITORY_PROPERTIES,
            "path": {"type": "string", "description": "Path of the file in the repository."},
            "ref": ref_property,
        },
        "required": ["path"],
    }

    list_files_schema: Dict[str, Any] = {
        "type": "object",
        "properties": {
            **REPOSITORY_PROPERTIES,
            "path": {
                "type": "string",
                "description": "Directory path to list. Defaults to the repository root.",
            },
            "ref": ref_property,
        },
    }

    search_code_schema: Dict[str, Any] = {
        "type": "object",
        "properties": {
            **REPOSITORY_PROPERTIES,
            "query": {"type": "string", "description": "Code search query."},
        },
        "required": ["query"],
    }

    write_file_schema: Dict[str, Any] = {
        "type": "object",
        "properties": {
            **REPOSITORY_PROPERTIES,
            "path": {"type": "string", "description": "Path of the file to create or update."},
            "content": {"type": "string", "description": "New file content (plain text)."},
            "message": {"type": "string", "description": "Commit message."},
            "sha": {
                "type": "string",
                "description": "Blob SHA of the file being replaced. Required when updating.",
            },
        },
        "required": ["path", "content", "message"],
    }

    registry.add_tool(
        types.Tool(
            name="get_file_contents",
            description="Read the text contents of a file in a repository.",
            inputSchema=file_contents_schema,
        ),
        _handle_get_file_contents,
    )
    registry.add_tool(
        types.Tool(
            name="list_repository_files",
            description="List files and directories at a path in a repository.",
            inputSchema=list_files_schema,
        ),
        _handle_list_repository_files,
    )
    registry.add_tool(
        types.Tool(
            name="search_code",
            description="Search for code within a repository.",
            inputSchema=search_code_schema,
        ),
        _handle_search_code,
    )
    registry.add_tool(
        types.Tool(
            name="create_or_update_file",
            description="Create a new file or update an existing one with a single commit.",
            inputSchema=write_file_schema,
        ),
        _handle_create_or_update_file,
    )
