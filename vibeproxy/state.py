"""State models for the LangGraph agent workflow."""

from typing import Any, Literal, Optional, TypedDict

from vibeproxy.tools.planner import Plan
from vibeproxy.workspace import Edit

Status = Literal["planning", "gathering", "executing", "applied", "failed"]


class AgentState(TypedDict, total=False):
    """The state object passed through the agent workflow.

    Attributes:
        task: Task description from the caller
        project_id: Project whose workspace is edited
        status: Current workflow state
        plan: Parsed plan (after planning)
        context: Tool results keyed by tool name (after gathering)
        edits: Concrete edits (after executing)
        reasoning: Model's explanation of the edits
        remote_refs: One remote reference per attempted mirror
        sync_failures: Path to error for mirrors that failed
        error: Failure message
        raw: Raw model output that failed to parse
        stage: Workflow state in which the failure happened
        run_id: Run log ID, when run logging is enabled
    """

    task: str
    project_id: str
    status: Status
    plan: Optional[Plan]
    context: dict[str, list[dict[str, Any]]]
    edits: list[Edit]
    reasoning: str
    remote_refs: list[str]
    sync_failures: dict[str, str]
    error: Optional[str]
    raw: Optional[str]
    stage: Optional[Status]
    run_id: Optional[str]
