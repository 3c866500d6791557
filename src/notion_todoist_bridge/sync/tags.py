"""Label composition for Todoist tasks."""

import re

DEFAULT_LABEL = "notion"

# Todoist allows 100 characters per label; stay well under it
MAX_WORKSPACE_TAG_LENGTH = 50


def create_workspace_tag(workspace_name: str) -> str:
    """Convert a Notion workspace name into a valid Todoist label.

    Example:
        "Corabella Pets" -> "corabella-pets"
    """
    tag = workspace_name.lower()
    tag = re.sub(r"\s+", "-", tag)
    tag = re.sub(r"[^a-z0-9\-_]", "", tag)
    tag = tag.strip("-")
    return tag[:MAX_WORKSPACE_TAG_LENGTH]


def combine_tags(base_tags: list[str] | None, workspace_name: str | None = None) -> list[str]:
    """Base tags (or the default label) plus the workspace tag, without duplicates."""
    tags = list(dict.fromkeys(base_tags or [DEFAULT_LABEL]))
    if workspace_name:
        workspace_tag = create_workspace_tag(workspace_name)
        if workspace_tag and workspace_tag not in tags:
            tags.append(workspace_tag)
    return tags
