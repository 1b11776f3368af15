"""Tests for the workspace store."""

import pytest
from pydantic import ValidationError

from vibeproxy.errors import NotFoundError
from vibeproxy.workspace import Edit, Workspace, WorkspaceStore


def test_apply_create_then_read(store):
    """Test that a created file can be read back verbatim."""
    store.apply("proj", Edit(kind="create", path="src/Hero.js", content="export const Hero = 1;\n"))

    assert store.read("proj", ["src/Hero.js"]) == {"src/Hero.js": "export const Hero = 1;\n"}


def test_apply_is_idempotent(store):
    """Test that applying the same edit twice leaves the same state as once."""
    edit = Edit(kind="update", path="src/App.js", content="new\n")

    store.apply("proj", edit)
    once = dict(store.get("proj").files)
    store.apply("proj", edit)

    assert store.get("proj").files == once


def test_delete_missing_file_is_noop(store):
    """Test that deleting an absent path does not fail or change anything."""
    before = dict(store.get("proj").files)

    store.apply("proj", Edit(kind="delete", path="nope.js"))

    assert store.get("proj").files == before


def test_apply_creates_unknown_workspace():
    """Test that edits against an unknown project create an empty workspace."""
    store = WorkspaceStore()

    store.apply("fresh", Edit(kind="create", path="a.txt", content="a"))

    assert store.get("fresh").files == {"a.txt": "a"}


def test_get_unknown_workspace_raises():
    """Test that reading an unknown workspace raises NotFoundError."""
    with pytest.raises(NotFoundError):
        WorkspaceStore().get("missing")


def test_put_replaces_wholesale(store):
    """Test that put replaces the whole workspace."""
    store.put("proj", Workspace("proj", {"only.txt": "x"}))

    assert store.get("proj").paths() == ["only.txt"]


def test_edit_requires_content_for_writes():
    """Test that create/update edits without content are rejected."""
    with pytest.raises(ValidationError):
        Edit(kind="create", path="a.js")


def test_edit_normalizes_path():
    """Test that edit paths are normalized to repository-relative form."""
    edit = Edit(kind="delete", path="./src\\old.js", content="ignored")

    assert edit.path == "src/old.js"
    assert edit.content is None


def test_list_tree(store):
    """Test the nested directory tree built from paths."""
    tree = store.list_tree("proj")

    assert tree["README.md"] is None
    assert tree["src"]["App.js"] is None
    assert tree["src"]["components"] == {"Header.js": None}


def test_search_is_case_insensitive(store):
    """Test that search matches lines regardless of case."""
    results = store.search("proj", "hello")

    by_file = {r["file"]: r["matches"] for r in results}
    assert by_file["src/components/Header.js"] == ["  return <h1>hello world</h1>;"]
    assert by_file["README.md"] == ["Say Hello to the app."]
    assert "src/App.js" not in by_file


def test_read_omits_absent_paths(store):
    """Test that read silently skips paths that do not exist."""
    result = store.read("proj", ["src/App.js", "missing.js"])

    assert list(result) == ["src/App.js"]


def test_locate_ranks_components_first(store):
    """Test the locate heuristic ordering."""
    ranked = store.locate("proj", "Restyle the header component")

    assert ranked[0] == {"file": "src/components/Header.js", "relevance": 0.9}
    assert {"file": "src/index.css", "relevance": 0.8} in ranked
    assert {"file": "src/App.js", "relevance": 0.5} in ranked
    assert all(r["file"] != "README.md" for r in ranked)
    assert [r["relevance"] for r in ranked] == sorted((r["relevance"] for r in ranked), reverse=True)


def test_search_groups_matching_lines_per_file():
    """Test that every matching line of a file lands in a single entry."""
    store = WorkspaceStore()
    store.put("p1", Workspace("p1", {"src/log.js": 'console.log("hello world")\nconst x = 1;\nsay hello again\n'}))

    results = store.search("p1", "hello")

    assert results == [{"file": "src/log.js", "matches": ['console.log("hello world")', "say hello again"]}]


def test_locate_component_task_prefers_component_files():
    """Test that a component task ranks component files above stylesheets."""
    store = WorkspaceStore()
    store.put("p1", Workspace("p1", {
        "src/index.css": "body {}\n",
        "src/components/Hero.js": "export default function Hero() {}\n",
        "README.md": "# Site\n",
    }))

    ranked = store.locate("p1", "add a component")

    assert ranked[0] == {"file": "src/components/Hero.js", "relevance": 0.9}
    css = [r["relevance"] for r in ranked if r["file"] == "src/index.css"]
    assert css == [] or css[0] <= 0.5
