from __future__ import annotations

from typing import Any, Dict, Tuple

from ..config import ToolConfig
from ..errors import ValidationError

# Shared input fields for every tool that targets one repository.
REPOSITORY_PROPERTIES: Dict[str, Any] = {
    "owner": {
        "type": "string",
        "description": "Repository owner (user or organization). Defaults to the configured owner.",
    },
    "repo": {
        "type": "string",
        "description": "Repository name. Defaults to the configured repository.",
    },
}

STATE_PROPERTY: Dict[str, Any] = {
    "type": "string",
    "enum": ["open", "closed", "all"],
    "description": "Filter by state (default: open).",
}


def resolve_repository(arguments: Dict[str, Any], config: ToolConfig) -> Tuple[str, str]:
    """
    Pick the target repository from the call arguments, falling back to the
    process-wide defaults.

    Raises `ValidationError` when neither source names an owner or a repo, so
    the call is rejected before any backend request is made.
    """
    owner = arguments.get("owner") or config.default_owner
    if not owner:
        raise ValidationError(
            ["owner"], "missing required property 'owner' (no default owner configured)"
        )
    repo = arguments.get("repo") or config.default_repo
    if not repo:
        raise ValidationError(
            ["repo"], "missing required property 'repo' (no default repository configured)"
        )
    _check_segment("owner", owner)
    _check_segment("repo", repo)
    return owner, repo


def _check_segment(key: str, value: str) -> None:
    if "/" in value or value in (".", ".."):
        raise ValidationError([key], f"'{value}' is not a valid {key} name")
