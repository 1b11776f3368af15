"""Tests for plan/execution prompt building and parsing."""

import pytest

from vibeproxy.errors import ParseError
from vibeproxy.tools.planner import (
    Plan,
    build_execution_prompt,
    build_planning_prompt,
    extract_json,
    parse_execution,
    parse_plan,
)


def test_extract_bare_json():
    """Test extracting a bare JSON object."""
    assert extract_json('{"a": 1}') == {"a": 1}


def test_extract_fenced_json():
    """Test extracting JSON from a markdown code fence."""
    text = 'Here is the plan:\n```json\n{"understanding": []}\n```\nDone.'

    assert extract_json(text) == {"understanding": []}


def test_extract_json_surrounded_by_prose():
    """Test extracting JSON embedded in prose with trailing commas."""
    text = 'Sure! {"edits": [{"kind": "delete", "path": "a.js"},],} Let me know.'

    assert extract_json(text) == {"edits": [{"kind": "delete", "path": "a.js"}]}


def test_extract_json_failure_keeps_raw():
    """Test that unparseable output raises with the raw text attached."""
    with pytest.raises(ParseError) as exc_info:
        extract_json("I cannot do that.")

    assert exc_info.value.raw == "I cannot do that."


def test_extract_json_rejects_arrays():
    """Test that a top-level array is not accepted as a plan."""
    with pytest.raises(ParseError):
        extract_json("[1, 2, 3]")


def test_parse_plan():
    """Test parsing a plan with tool requests."""
    plan = parse_plan(
        '{"understanding": [{"tool": "cat", "target": ["src/App.js", "src/index.js"]}, {"tool": "tree"}],'
        ' "planning": {"analysis": "small"}, "execution": {"actions": ["edit App"]}}'
    )

    assert plan.understanding[0].tool == "cat"
    assert plan.understanding[0].target == "src/App.js, src/index.js"
    assert plan.understanding[1].target == ""
    assert plan.planning == {"analysis": "small"}


def test_parse_plan_invalid_shape():
    """Test that a plan with the wrong shape is a ParseError."""
    with pytest.raises(ParseError, match="Invalid plan"):
        parse_plan('{"understanding": "search everything"}')


def test_parse_execution_aliases_kinds():
    """Test that common edit kind synonyms are normalized."""
    execution = parse_execution(
        '{"edits": [{"kind": "Add", "path": "a.js", "content": "a"},'
        ' {"kind": "modify", "path": "b.js", "content": "b"},'
        ' {"kind": "remove", "path": "c.js"}], "reasoning": "tidy"}'
    )

    assert [e.kind for e in execution.edits] == ["create", "update", "delete"]
    assert execution.reasoning == "tidy"


def test_parse_execution_requires_content():
    """Test that a create edit without content is rejected."""
    with pytest.raises(ParseError, match="missing content"):
        parse_execution('{"edits": [{"kind": "create", "path": "a.js"}]}')


def test_parse_execution_requires_diff_for_patch():
    """Test that a patch edit without a diff is rejected."""
    with pytest.raises(ParseError, match="missing a diff"):
        parse_execution('{"edits": [{"kind": "patch", "path": "a.js"}]}')


def test_planning_prompt_lists_files_and_tools():
    """Test the planning prompt contents."""
    prompt = build_planning_prompt("Add a footer", ["src/App.js"], {"search": "Search files"})

    assert "Task: Add a footer" in prompt
    assert "- src/App.js" in prompt
    assert "- search: Search files" in prompt


def test_planning_prompt_empty_repository():
    """Test the planning prompt for an empty workspace."""
    prompt = build_planning_prompt("Start", [], {})

    assert "(empty repository)" in prompt


def test_execution_prompt_truncates_context():
    """Test that very large context is truncated."""
    context = {"cat": [{"target": "big.js", "result": {"big.js": "x" * 50000}}]}

    prompt = build_execution_prompt("Task", Plan(), context)

    assert "... (context truncated)" in prompt
    assert len(prompt) < 40000


@pytest.mark.parametrize("path", ["/", "./", " "])
def test_parse_execution_rejects_empty_paths(path):
    """Test that paths normalizing to nothing are rejected."""
    text = '{"edits": [{"kind": "create", "path": "%s", "content": "x"}]}' % path

    with pytest.raises(ParseError, match="empty") as exc_info:
        parse_execution(text)

    assert exc_info.value.raw == text
