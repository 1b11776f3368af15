"""In-memory workspace store: the agent's view of each project's files."""

import logging
from dataclasses import dataclass, field
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, model_validator

from vibeproxy.constants import (
    RELEVANCE_COMPONENT,
    RELEVANCE_SOURCE,
    RELEVANCE_STYLE,
    SOURCE_EXTENSIONS,
    STYLE_EXTENSIONS,
)
from vibeproxy.errors import NotFoundError

logger = logging.getLogger(__name__)


class Edit(BaseModel):
    """A single create/update/delete instruction against a workspace."""

    kind: Literal["create", "update", "delete"] = Field(description="Edit type")
    path: str = Field(description="File path relative to the repository root")
    content: Optional[str] = Field(None, description="Full file content for create/update")

    @model_validator(mode="after")
    def _check_content(self) -> "Edit":
        self.path = normalize_path(self.path)
        if not self.path:
            raise ValueError("path must not be empty")
        if self.kind in ("create", "update") and self.content is None:
            raise ValueError(f"content is required for {self.kind} edits")
        if self.kind == "delete":
            self.content = None
        return self


def normalize_path(path: str) -> str:
    """Normalize a path to the forward-slash, no-leading-slash form used as a key."""
    path = path.replace("\\", "/").strip()
    while path.startswith("./"):
        path = path[2:]
    return path.strip("/")


@dataclass
class Workspace:
    """Snapshot of one project's files."""

    project_id: str
    files: dict[str, str] = field(default_factory=dict)

    def apply(self, edit: Edit) -> None:
        """Apply one edit in place.

        Create and update overwrite the path, delete removes it (no-op if missing).
        """
        if edit.kind == "delete":
            self.files.pop(edit.path, None)
        else:
            self.files[edit.path] = edit.content

    def paths(self) -> list[str]:
        return list(self.files)


class WorkspaceStore:
    """Process-wide mapping of project ID to workspace.

    Created at application start and passed to whoever needs it. There is no
    locking: concurrent workflows on the same project race on its contents.
    """

    def __init__(self):
        self._workspaces: dict[str, Workspace] = {}

    def get(self, project_id: str) -> Workspace:
        """Get a project's workspace.

        Raises:
            NotFoundError: If the project has no workspace
        """
        try:
            return self._workspaces[project_id]
        except KeyError:
            raise NotFoundError("workspace", project_id) from None

    def put(self, project_id: str, workspace: Workspace) -> None:
        """Store a workspace, replacing any previous one wholesale."""
        self._workspaces[project_id] = workspace

    def has(self, project_id: str) -> bool:
        return project_id in self._workspaces

    def drop(self, project_id: str) -> None:
        self._workspaces.pop(project_id, None)

    def clear(self) -> None:
        self._workspaces.clear()

    def apply(self, project_id: str, edit: Edit) -> None:
        """Apply an edit, creating an empty workspace for unknown projects."""
        workspace = self._workspaces.setdefault(project_id, Workspace(project_id))
        workspace.apply(edit)
        logger.debug("Applied %s %s to %s", edit.kind, edit.path, project_id)

    def apply_all(self, project_id: str, edits: list[Edit]) -> None:
        """Apply edits sequentially, in list order."""
        for edit in edits:
            self.apply(project_id, edit)

    def list_tree(self, project_id: str) -> dict[str, Any]:
        """Build a nested directory tree from the workspace's file paths.

        Directories map to sub-dicts; files map to None.

        Returns:
            Nested dict keyed by path segment
        """
        tree: dict[str, Any] = {}
        for path in self.get(project_id).files:
            *dirs, name = path.split("/")
            node = tree
            for part in dirs:
                child = node.get(part)
                if not isinstance(child, dict):
                    child = node[part] = {}
                node = child
            node.setdefault(name, None)
        return tree

    def search(self, project_id: str, query: str) -> list[dict[str, Any]]:
        """Case-insensitive substring search over every line of every file.

        Returns:
            One {file, matches} entry per file with at least one matching line
        """
        needle = query.lower()
        results = []
        for path, content in self.get(project_id).files.items():
            matches = [line for line in content.splitlines() if needle in line.lower()]
            if matches:
                results.append({"file": path, "matches": matches})
        return results

    def read(self, project_id: str, paths: list[str]) -> dict[str, str]:
        """Read the requested files; absent paths are silently omitted."""
        files = self.get(project_id).files
        result = {}
        for path in paths:
            key = normalize_path(path)
            if key in files:
                result[key] = files[key]
        return result

    def locate(self, project_id: str, task_text: str) -> list[dict[str, Any]]:
        """Rank files likely relevant to a task.

        A crude keyword/extension heuristic standing in for semantic search.

        Returns:
            [{file, relevance}] sorted by descending relevance
        """
        task = task_text.lower()
        wants_component = "component" in task
        wants_style = "style" in task

        ranked = []
        for path in self.get(project_id).files:
            lowered = path.lower()
            if wants_component and "component" in lowered:
                relevance = RELEVANCE_COMPONENT
            elif wants_style and lowered.endswith(STYLE_EXTENSIONS):
                relevance = RELEVANCE_STYLE
            elif lowered.endswith(SOURCE_EXTENSIONS):
                relevance = RELEVANCE_SOURCE
            else:
                continue
            ranked.append({"file": path, "relevance": relevance})

        ranked.sort(key=lambda item: item["relevance"], reverse=True)
        return ranked
