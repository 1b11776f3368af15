"""Project records and the in-memory project registry."""

import logging
import re
import uuid
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field

from vibeproxy.errors import NotFoundError
from vibeproxy.github import GitHubClient, RepoTarget
from vibeproxy.workspace import Workspace, WorkspaceStore

logger = logging.getLogger(__name__)

SLUG_RE = re.compile(r"[^a-z0-9-]")


def repo_slug(project_name: str) -> str:
    """Turn a project name into a repository name."""
    return SLUG_RE.sub("-", project_name.lower())


class ProjectRecord(BaseModel):
    """A project backed by a GitHub repository."""

    id: str
    name: str
    complexity: str
    owner: str
    repo_name: str
    github_repo: str
    github_clone_url: str
    default_branch: Optional[str] = None
    user_id: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    initial_structure: list[str] = Field(default_factory=list)

    @property
    def target(self) -> RepoTarget:
        return RepoTarget(owner=self.owner, repo=self.repo_name, branch=self.default_branch)


class ProjectRegistry:
    """Process-lifetime registry of projects, keyed by project ID."""

    def __init__(self):
        self._projects: dict[str, ProjectRecord] = {}

    def create(self, **fields) -> ProjectRecord:
        """Register a new project under a fresh UUID."""
        record = ProjectRecord(id=str(uuid.uuid4()), **fields)
        self._projects[record.id] = record
        return record

    def get(self, project_id: str) -> ProjectRecord:
        """Get a project.

        Raises:
            NotFoundError: If the project is unknown
        """
        try:
            return self._projects[project_id]
        except KeyError:
            raise NotFoundError("project", project_id) from None

    def list_projects(self, user_id: Optional[str] = None) -> list[ProjectRecord]:
        return [p for p in self._projects.values() if user_id is None or p.user_id == user_id]


async def ensure_workspace(store: WorkspaceStore, project: ProjectRecord, github: GitHubClient) -> Workspace:
    """Return the project's workspace, hydrating it from GitHub on first use."""
    if store.has(project.id):
        return store.get(project.id)

    files = await github.read_repository(project.owner, project.repo_name, project.default_branch)
    logger.info("Hydrated workspace %s with %d file(s) from %s", project.id, len(files), project.github_repo)

    workspace = Workspace(project.id, files)
    store.put(project.id, workspace)
    return workspace
