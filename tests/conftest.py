"""Pytest configuration and fixtures."""

import base64
import json
from types import SimpleNamespace
from typing import Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from vibeproxy.config import Config
from vibeproxy.errors import UpstreamError
from vibeproxy.github import GitHubClient, SyncReport
from vibeproxy.projects import ProjectRegistry
from vibeproxy.server import create_app
from vibeproxy.services import Services
from vibeproxy.sessions import InMemorySessionStore
from vibeproxy.tools.toolset import ToolSet
from vibeproxy.workspace import Workspace, WorkspaceStore


def anthropic_message(text: str, stop_reason: str = "end_turn"):
    """Build an object shaped like an Anthropic Messages API response."""
    return SimpleNamespace(
        id="msg_test",
        model="claude-sonnet-4-5-20250929",
        content=[SimpleNamespace(type="text", text=text)],
        stop_reason=stop_reason,
        usage=SimpleNamespace(input_tokens=12, output_tokens=30),
    )


class StubLLM:
    """Replays queued responses and records every prompt it receives."""

    def __init__(self, *responses: str):
        self.responses = list(responses)
        self.prompts: list[str] = []
        self.chats: list[dict] = []

    def queue(self, *responses: str) -> None:
        self.responses.extend(responses)

    def _next(self) -> str:
        if not self.responses:
            raise UpstreamError("anthropic", 500, "no stubbed response left")
        return self.responses.pop(0)

    async def complete(self, prompt: str, max_tokens: Optional[int] = None) -> dict[str, str]:
        self.prompts.append(prompt)
        return {"role": "assistant", "content": self._next()}

    async def chat(self, messages, system=None, model=None, max_tokens=None):
        self.chats.append({"messages": messages, "system": system, "model": model, "max_tokens": max_tokens})
        return anthropic_message(self._next())


class RecordingSync:
    """RemoteSync stand-in that records mirrored edits instead of calling GitHub."""

    def __init__(self, fail_paths: tuple[str, ...] = ()):
        self.fail_paths = fail_paths
        self.mirrored = []

    async def mirror(self, target, edits) -> SyncReport:
        report = SyncReport()
        for edit in edits:
            self.mirrored.append((target, edit))
            if edit.path in self.fail_paths:
                report.refs.append(f"failed:{edit.path}")
                report.failures[edit.path] = "github request failed with status 409"
            else:
                report.refs.append(f"sha-{len(self.mirrored)}")
        return report


class FakeGitHub:
    """In-memory GitHub REST API served through httpx.MockTransport."""

    def __init__(self, owner: str = "octocat"):
        self.owner = owner
        self.repos: dict[str, dict[str, str]] = {}
        self.commits: list[tuple[str, str, str]] = []
        self.fail_puts: set[str] = set()
        self.messages: list[str] = []

    def seed(self, repo: str, files: dict[str, str]) -> None:
        self.repos[repo] = dict(files)

    def _sha(self, repo: str, path: str) -> str:
        return f"blob-{repo}-" + path.replace("/", "_")

    def handler(self, request: httpx.Request) -> httpx.Response:
        parts = request.url.path.strip("/").split("/")

        if request.method == "POST" and parts == ["user", "repos"]:
            name = json.loads(request.content)["name"]
            self.repos.setdefault(name, {"README.md": f"# {name}\n"})
            return httpx.Response(201, json={
                "name": name,
                "owner": {"login": self.owner},
                "html_url": f"https://github.com/{self.owner}/{name}",
                "clone_url": f"https://github.com/{self.owner}/{name}.git",
                "default_branch": "main",
            })

        if len(parts) < 3 or parts[0] != "repos" or parts[2] not in self.repos:
            return httpx.Response(404, json={"message": "Not Found"})

        repo = parts[2]
        files = self.repos[repo]
        rest = parts[3:]

        if not rest:
            return httpx.Response(200, json={"name": repo, "default_branch": "main"})

        if rest[0] == "contents":
            path = "/".join(rest[1:])
            if request.method == "GET":
                if path not in files:
                    return httpx.Response(404, json={"message": "Not Found"})
                encoded = base64.b64encode(files[path].encode()).decode()
                return httpx.Response(200, json={
                    "type": "file", "path": path, "sha": self._sha(repo, path), "content": encoded,
                })
            if request.method == "PUT":
                if path in self.fail_puts:
                    return httpx.Response(409, json={"message": "conflict"})
                body = json.loads(request.content)
                files[path] = base64.b64decode(body["content"]).decode()
                self.commits.append((repo, "put", path))
                self.messages.append(body["message"])
                return httpx.Response(200, json={"commit": {"sha": f"commit-{len(self.commits)}"}})
            if request.method == "DELETE":
                files.pop(path, None)
                self.messages.append(json.loads(request.content)["message"])
                self.commits.append((repo, "delete", path))
                return httpx.Response(200, json={"commit": {"sha": f"commit-{len(self.commits)}"}})

        if rest[:2] == ["git", "trees"]:
            tree = [
                {"path": path, "type": "blob", "sha": self._sha(repo, path), "size": len(content)}
                for path, content in files.items()
            ]
            return httpx.Response(200, json={"tree": tree, "truncated": False})

        if rest[:2] == ["git", "blobs"]:
            sha = rest[2]
            for path, content in files.items():
                if self._sha(repo, path) == sha:
                    return httpx.Response(200, json={"content": base64.b64encode(content.encode()).decode()})

        return httpx.Response(404, json={"message": "Not Found"})

    def client(self, token: str = "test-token") -> GitHubClient:
        http = httpx.AsyncClient(
            base_url="https://api.github.test",
            transport=httpx.MockTransport(self.handler),
            headers={"Authorization": f"Bearer {token}"},
        )
        return GitHubClient(token, "https://api.github.test", client=http)


@pytest.fixture
def store():
    """Workspace store holding a small React project under 'proj'."""
    store = WorkspaceStore()
    store.put("proj", Workspace("proj", {
        "src/App.js": "import Header from './components/Header';\n\nfunction App() {\n  return <Header />;\n}\n",
        "src/components/Header.js": "export default function Header() {\n  return <h1>hello world</h1>;\n}\n",
        "src/index.css": "body { margin: 0; }\n",
        "README.md": "# Demo\nSay Hello to the app.\n",
    }))
    return store


@pytest.fixture
def stub_llm():
    return StubLLM()


@pytest.fixture
def toolset(store, stub_llm):
    return ToolSet(store, stub_llm)


@pytest.fixture
def fake_github():
    return FakeGitHub()


@pytest.fixture
def services(stub_llm, fake_github):
    """Services wired to stubs: no network, no API keys."""
    store = WorkspaceStore()
    return Services(
        config=Config(anthropic_api_key="test-key"),
        llm=stub_llm,
        store=store,
        tools=ToolSet(store, stub_llm),
        projects=ProjectRegistry(),
        sessions=InMemorySessionStore(),
        github_factory=fake_github.client,
    )


@pytest.fixture
def client(services):
    """TestClient for an app built around the stub services."""
    with TestClient(create_app(services=services)) as client:
        yield client
