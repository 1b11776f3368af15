"""GitHub REST client and remote sync of workspace edits."""

import base64
import logging
from urllib.parse import quote
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from vibeproxy.constants import DEFAULT_GITHUB_API_URL
from vibeproxy.errors import PartialSyncError, UpstreamError, VibeProxyError
from vibeproxy.utils.ignore import IgnoreRules
from vibeproxy.workspace import Edit

logger = logging.getLogger(__name__)

NOT_FOUND = 404
COMMIT_VERBS = {"create": "Add", "update": "Update"}
MAX_HYDRATE_FILES = 300
MAX_HYDRATE_BYTES = 1024 * 1024


@dataclass
class RepoTarget:
    """A repository that workspace edits are mirrored to."""

    owner: str
    repo: str
    branch: Optional[str] = None


@dataclass
class SyncReport:
    """Outcome of mirroring an edit list.

    ``refs`` holds one entry per attempted mirror, in edit order: the commit
    SHA on success, ``unchanged:<path>`` for deletes of files the remote does
    not have, and ``failed:<path>`` on failure.
    """

    refs: list[str] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failures

    def raise_for_failures(self) -> None:
        """Raise PartialSyncError if any mirror failed."""
        if self.failures:
            raise PartialSyncError(self.failures)


class GitHubClient:
    """Minimal async client for the GitHub REST API."""

    def __init__(
        self,
        token: str,
        base_url: str = DEFAULT_GITHUB_API_URL,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize GitHub client.

        Args:
            token: GitHub token
            base_url: API base URL
            client: Optional pre-built HTTP client (used as-is)
        """
        self.base_url = base_url.rstrip("/")
        self.client = client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(None),
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            },
        )

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self.client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error("GitHub %s %s failed: %s", method, url, e)
            raise UpstreamError("github", None, str(e)) from e
        return response

    async def _json(self, method: str, url: str, **kwargs: Any) -> Any:
        response = await self._request(method, url, **kwargs)
        if response.status_code >= 400:
            logger.error("GitHub %s %s returned %s", method, url, response.status_code)
            raise UpstreamError("github", response.status_code, response.text)
        return response.json()

    @staticmethod
    def _contents_url(owner: str, repo: str, path: str) -> str:
        # Slashes stay as separators, everything else is percent-encoded
        return f"/repos/{owner}/{repo}/contents/{quote(path, safe='/')}"

    async def create_repository(self, name: str, description: str = "", private: bool = False) -> dict[str, Any]:
        """Create a repository for the authenticated user.

        Returns:
            Repository JSON (html_url, clone_url, owner, default_branch...)
        """
        return await self._json(
            "POST",
            "/user/repos",
            json={"name": name, "description": description, "private": private, "auto_init": True},
        )

    async def get_repository(self, owner: str, repo: str) -> dict[str, Any]:
        return await self._json("GET", f"/repos/{owner}/{repo}")

    async def get_file(self, owner: str, repo: str, path: str, branch: Optional[str] = None) -> Optional[dict[str, Any]]:
        """Get a file's metadata and decoded content.

        Returns:
            {"path", "sha", "content"} or None if the file does not exist
        """
        params = {"ref": branch} if branch else None
        response = await self._request("GET", self._contents_url(owner, repo, path), params=params)
        if response.status_code == NOT_FOUND:
            return None
        if response.status_code >= 400:
            raise UpstreamError("github", response.status_code, response.text)

        data = response.json()
        if isinstance(data, list) or data.get("type") != "file":
            return None

        content = base64.b64decode(data.get("content") or "").decode("utf-8", errors="replace")
        return {"path": data["path"], "sha": data["sha"], "content": content}

    async def put_file(
        self,
        owner: str,
        repo: str,
        path: str,
        content: str,
        message: str,
        branch: Optional[str] = None,
    ) -> str:
        """Create or update a file in one commit.

        Returns:
            Commit SHA
        """
        existing = await self.get_file(owner, repo, path, branch)
        body: dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
        }
        if existing:
            body["sha"] = existing["sha"]
        if branch:
            body["branch"] = branch

        data = await self._json("PUT", self._contents_url(owner, repo, path), json=body)
        return data["commit"]["sha"]

    async def delete_file(
        self,
        owner: str,
        repo: str,
        path: str,
        message: str,
        branch: Optional[str] = None,
    ) -> Optional[str]:
        """Delete a file in one commit.

        Returns:
            Commit SHA, or None if the file does not exist
        """
        existing = await self.get_file(owner, repo, path, branch)
        if not existing:
            return None

        body: dict[str, Any] = {"message": message, "sha": existing["sha"]}
        if branch:
            body["branch"] = branch

        data = await self._json("DELETE", self._contents_url(owner, repo, path), json=body)
        return data["commit"]["sha"]

    async def list_files(self, owner: str, repo: str, branch: Optional[str] = None) -> list[dict[str, Any]]:
        """List every blob in the repository tree.

        Returns:
            [{"path", "sha", "size"}]
        """
        if not branch:
            branch = (await self.get_repository(owner, repo)).get("default_branch", "main")

        data = await self._json("GET", f"/repos/{owner}/{repo}/git/trees/{branch}", params={"recursive": "1"})
        if data.get("truncated"):
            logger.warning("Tree of %s/%s is truncated", owner, repo)

        return [
            {"path": item["path"], "sha": item["sha"], "size": item.get("size", 0)}
            for item in data.get("tree", [])
            if item.get("type") == "blob"
        ]

    async def get_blob(self, owner: str, repo: str, sha: str) -> Optional[str]:
        """Get a blob as UTF-8 text; None for binary content."""
        data = await self._json("GET", f"/repos/{owner}/{repo}/git/blobs/{sha}")
        raw = base64.b64decode(data.get("content") or "")
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError:
            return None

    async def read_repository(self, owner: str, repo: str, branch: Optional[str] = None) -> dict[str, str]:
        """Read every text file of a repository that passes the ignore rules.

        Returns:
            Mapping of path to content
        """
        entries = await self.list_files(owner, repo, branch)

        gitignore = None
        for entry in entries:
            if entry["path"] == ".gitignore":
                gitignore = await self.get_blob(owner, repo, entry["sha"])
        rules = IgnoreRules(gitignore)

        files: dict[str, str] = {}
        for entry in entries:
            if len(files) >= MAX_HYDRATE_FILES:
                logger.warning("Stopped reading %s/%s after %d files", owner, repo, MAX_HYDRATE_FILES)
                break
            if entry["size"] > MAX_HYDRATE_BYTES or rules.should_ignore(entry["path"]):
                continue
            content = await self.get_blob(owner, repo, entry["sha"])
            if content is not None:
                files[entry["path"]] = content

        return files


class RemoteSync:
    """Mirrors workspace edits to a GitHub repository, one commit per file."""

    def __init__(self, client: GitHubClient):
        self.client = client

    async def commit(
        self,
        owner: str,
        repo: str,
        path: str,
        content: str,
        branch: Optional[str] = None,
        kind: str = "update",
    ) -> str:
        """Commit one file's content.

        Args:
            kind: Edit kind the commit message is worded for ("create" or "update")

        Returns:
            Commit SHA
        """
        message = f"{COMMIT_VERBS.get(kind, 'Update')} {path}"
        return await self.client.put_file(owner, repo, path, content, message, branch)

    async def remove(self, owner: str, repo: str, path: str, branch: Optional[str] = None) -> Optional[str]:
        """Delete one file. Returns the commit SHA, or None if it was absent."""
        return await self.client.delete_file(owner, repo, path, f"Delete {path}", branch)

    async def mirror(self, target: RepoTarget, edits: list[Edit]) -> SyncReport:
        """Mirror edits sequentially, in list order.

        A failed file is logged and skipped; earlier commits are kept.

        Args:
            target: Repository to commit to
            edits: Edits already applied to the workspace

        Returns:
            SyncReport with one ref per edit
        """
        report = SyncReport()
        for edit in edits:
            try:
                if edit.kind == "delete":
                    sha = await self.remove(target.owner, target.repo, edit.path, target.branch)
                    report.refs.append(sha or f"unchanged:{edit.path}")
                else:
                    sha = await self.commit(
                        target.owner, target.repo, edit.path, edit.content, target.branch, kind=edit.kind
                    )
                    report.refs.append(sha)
            except VibeProxyError as e:
                logger.warning("Error committing %s: %s", edit.path, e)
                report.refs.append(f"failed:{edit.path}")
                report.failures[edit.path] = str(e)
        return report

    async def mirror_files(self, target: RepoTarget, files: dict[str, str], kind: str = "create") -> SyncReport:
        """Mirror a path-to-content mapping as edits of one kind."""
        edits = [Edit(kind=kind, path=path, content=content) for path, content in files.items()]
        return await self.mirror(target, edits)
