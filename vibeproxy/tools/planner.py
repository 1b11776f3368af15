"""Prompt building and parsing for the agent's planning and execution calls."""

import json
import re
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from vibeproxy.errors import ParseError
from vibeproxy.workspace import normalize_path

MAX_LISTED_FILES = 200
MAX_CONTEXT_CHARS = 30000

FENCED_JSON_RE = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL)
TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")

EDIT_KIND_ALIASES = {
    "add": "create",
    "new": "create",
    "modify": "update",
    "replace": "update",
    "edit": "update",
    "remove": "delete",
}


class ToolRequest(BaseModel):
    """An information need declared by the plan."""

    tool: str = Field(description="Tool name, e.g. search, cat, locate")
    target: str = Field("", description="Tool argument")

    @field_validator("target", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, list):
            return ", ".join(str(v) for v in value)
        return str(value)


class Plan(BaseModel):
    """Structured breakdown of a task into three phases."""

    understanding: list[ToolRequest] = Field(
        default_factory=list,
        description="Ordered tool requests to run before editing",
    )
    planning: Any = Field(None, description="Analysis, dependencies and risks")
    execution: Any = Field(None, description="Intended actions")


class ProposedEdit(BaseModel):
    """An edit as returned by the model, before patches are resolved."""

    kind: Literal["create", "update", "delete", "patch"]
    path: str
    content: Optional[str] = None
    diff: Optional[str] = None

    @field_validator("kind", mode="before")
    @classmethod
    def _alias_kind(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip().lower()
            return EDIT_KIND_ALIASES.get(value, value)
        return value


class ExecutionPlan(BaseModel):
    """Concrete edits produced by the execution call."""

    edits: list[ProposedEdit] = Field(default_factory=list)
    reasoning: str = ""

    @field_validator("reasoning", mode="before")
    @classmethod
    def _reasoning_text(cls, value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, str):
            return value
        return json.dumps(value)


PLANNING_PROMPT = """You are a senior software engineer working on an existing repository.

Task: {task}

Repository files:
{file_list}

Before changing anything, decide what you need to learn about the code. Available tools:
{tool_list}

Respond with ONLY a JSON object of this shape:
{{
  "understanding": [{{"tool": "<tool name>", "target": "<argument>"}}],
  "planning": {{"analysis": "...", "dependencies": ["..."], "risks": ["..."]}},
  "execution": {{"actions": ["..."]}}
}}"""


EXECUTION_PROMPT = """You are a senior software engineer implementing a task in an existing repository.

Task: {task}

Your plan:
{plan}

Context gathered from the repository:
{context}

Produce the concrete file changes. Respond with ONLY a JSON object of this shape:
{{
  "edits": [
    {{"kind": "create", "path": "src/components/Example.js", "content": "<full file content>"}},
    {{"kind": "update", "path": "src/App.js", "content": "<full new file content>"}},
    {{"kind": "patch", "path": "src/index.js", "diff": "<unified diff for this file>"}},
    {{"kind": "delete", "path": "src/old.js"}}
  ],
  "reasoning": "<short explanation of the changes>"
}}

Rules:
- Paths are relative to the repository root and use forward slashes
- create/update edits carry the COMPLETE file content
- Only use patch for small changes to files you have seen"""


def build_planning_prompt(task: str, paths: list[str], tools: dict[str, str]) -> str:
    """Build the planning prompt.

    Args:
        task: Task description
        paths: Workspace file paths
        tools: Tool name to description

    Returns:
        Prompt string
    """
    listed = [f"- {p}" for p in paths[:MAX_LISTED_FILES]]
    if len(paths) > MAX_LISTED_FILES:
        listed.append(f"... and {len(paths) - MAX_LISTED_FILES} more files")
    file_list = "\n".join(listed) if listed else "(empty repository)"

    tool_list = "\n".join(f"- {name}: {desc}" for name, desc in tools.items())

    return PLANNING_PROMPT.format(task=task, file_list=file_list, tool_list=tool_list)


def build_execution_prompt(task: str, plan: Plan, context: dict[str, Any]) -> str:
    """Build the execution prompt.

    Args:
        task: Task description
        plan: Parsed plan
        context: Tool results keyed by tool name

    Returns:
        Prompt string
    """
    context_json = json.dumps(context, indent=2, default=str)
    if len(context_json) > MAX_CONTEXT_CHARS:
        context_json = context_json[:MAX_CONTEXT_CHARS] + "\n... (context truncated)"

    return EXECUTION_PROMPT.format(
        task=task,
        plan=json.dumps(plan.model_dump(), indent=2, default=str),
        context=context_json,
    )


def extract_json(text: str) -> dict[str, Any]:
    """Extract a JSON object from model output.

    Accepts bare JSON, JSON inside a markdown code fence, or JSON surrounded
    by prose. Trailing commas before closing brackets are tolerated.

    Raises:
        ParseError: If no JSON object can be extracted
    """
    stripped = text.strip()
    candidates = [stripped]

    fenced = FENCED_JSON_RE.search(stripped)
    if fenced:
        candidates.append(fenced.group(1))

    start, end = stripped.find("{"), stripped.rfind("}")
    if 0 <= start < end:
        candidates.append(stripped[start : end + 1])

    for candidate in candidates:
        for attempt in (candidate, TRAILING_COMMA_RE.sub(r"\1", candidate)):
            try:
                data = json.loads(attempt)
            except json.JSONDecodeError:
                continue
            if isinstance(data, dict):
                return data

    raise ParseError("Model response is not a JSON object", raw=text)


def parse_plan(text: str) -> Plan:
    """Parse the planning response.

    Raises:
        ParseError: If the response is not a valid plan
    """
    data = extract_json(text)
    try:
        return Plan(**data)
    except ValidationError as e:
        raise ParseError(f"Invalid plan: {e.error_count()} validation error(s)", raw=text) from e


def parse_execution(text: str) -> ExecutionPlan:
    """Parse the execution response.

    Raises:
        ParseError: If the response is not a valid edit list
    """
    data = extract_json(text)
    try:
        execution = ExecutionPlan(**data)
    except ValidationError as e:
        raise ParseError(f"Invalid edit list: {e.error_count()} validation error(s)", raw=text) from e

    for edit in execution.edits:
        if not normalize_path(edit.path):
            raise ParseError(f"Edit path {edit.path!r} is empty", raw=text)
        if edit.kind in ("create", "update") and edit.content is None:
            raise ParseError(f"Edit for {edit.path} is missing content", raw=text)
        if edit.kind == "patch" and not edit.diff:
            raise ParseError(f"Patch for {edit.path} is missing a diff", raw=text)

    return execution
