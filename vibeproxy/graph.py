"""LangGraph agent workflow: plan -> gather -> execute -> apply."""

import logging
from typing import Any, Optional

from langgraph.graph import END, StateGraph
from pydantic import BaseModel, Field

from vibeproxy.errors import ParseError, PatchError, UpstreamError
from vibeproxy.github import RemoteSync, RepoTarget
from vibeproxy.llm import LLM
from vibeproxy.state import AgentState
from vibeproxy.tools.planner import (
    Plan,
    build_execution_prompt,
    build_planning_prompt,
    parse_execution,
    parse_plan,
)
from vibeproxy.tools.toolset import ToolSet
from vibeproxy.utils.logging import RunLogger
from vibeproxy.workspace import Edit, Workspace, WorkspaceStore

logger = logging.getLogger(__name__)


class ExecutionResult(BaseModel):
    """Outcome of one agent workflow run."""

    success: bool
    edits: list[Edit] = Field(default_factory=list)
    reasoning: str = ""
    remote_refs: list[str] = Field(default_factory=list)
    sync_failures: dict[str, str] = Field(default_factory=dict)
    plan: Optional[Plan] = None
    error: Optional[str] = None
    raw: Optional[str] = None
    stage: Optional[str] = None
    run_id: Optional[str] = None

    def to_response(self) -> dict[str, Any]:
        """Serialize for HTTP responses; failures only carry error details."""
        if not self.success:
            return self.model_dump(include={"success", "error", "raw", "stage", "run_id"})
        return self.model_dump(exclude={"error", "raw", "stage"})


def _failed(stage: str, error: str, raw: Optional[str] = None) -> dict[str, Any]:
    return {"status": "failed", "stage": stage, "error": error, "raw": raw}


def _route(next_node: str):
    def route(state: AgentState) -> str:
        return "failed" if state.get("status") == "failed" else next_node

    return route


def build_agent_graph(
    llm: LLM,
    store: WorkspaceStore,
    tools: ToolSet,
    sync: Optional[RemoteSync] = None,
    target: Optional[RepoTarget] = None,
    run_logger: Optional[RunLogger] = None,
):
    """Build the compiled workflow graph.

    Every collaborator is injected; the graph keeps no state between runs.

    Args:
        llm: LLM gateway for the planning and execution calls
        store: Workspace store the edits are applied to
        tools: Tool set used during gathering
        sync: Optional remote sync for mirroring applied edits
        target: Repository to mirror to (required with ``sync``)
        run_logger: Optional run logger

    Returns:
        Compiled StateGraph
    """

    def record(state: AgentState, role: str, content: str) -> None:
        if run_logger and state.get("run_id"):
            run_logger.log_message(state["run_id"], role, content)

    async def ask(state: AgentState, prompt: str) -> str:
        record(state, "user", prompt)
        response = await llm.complete(prompt)
        record(state, "assistant", response["content"])
        return response["content"]

    async def plan_node(state: AgentState) -> dict[str, Any]:
        paths = store.get(state["project_id"]).paths()
        prompt = build_planning_prompt(state["task"], paths, tools.describe())

        try:
            text = await ask(state, prompt)
        except UpstreamError as e:
            return _failed("planning", str(e), e.body)

        try:
            plan = parse_plan(text)
        except ParseError as e:
            logger.warning("Planning response did not parse: %s", e)
            return _failed("planning", str(e), e.raw)

        if run_logger and state.get("run_id"):
            run_logger.save_plan(state["run_id"], plan.model_dump())

        logger.info("Plan for %s requests %d tool call(s)", state["project_id"], len(plan.understanding))
        return {"status": "gathering", "plan": plan}

    async def gather_node(state: AgentState) -> dict[str, Any]:
        context: dict[str, list[dict[str, Any]]] = {}

        for request in state["plan"].understanding:
            try:
                result = await tools.dispatch(request.tool, state["project_id"], request.target)
            except UpstreamError as e:
                return _failed("gathering", str(e), e.body)

            if result is None:
                continue
            context.setdefault(request.tool, []).append({"target": request.target, "result": result})

        return {"status": "executing", "context": context}

    async def execute_node(state: AgentState) -> dict[str, Any]:
        prompt = build_execution_prompt(state["task"], state["plan"], state.get("context", {}))

        try:
            text = await ask(state, prompt)
        except UpstreamError as e:
            return _failed("executing", str(e), e.body)

        try:
            execution = parse_execution(text)
        except ParseError as e:
            logger.warning("Execution response did not parse: %s", e)
            return _failed("executing", str(e), e.raw)

        edits = []
        for proposed in execution.edits:
            if proposed.kind == "patch":
                try:
                    edits.append(tools.patch(state["project_id"], proposed.path, proposed.diff))
                except PatchError as e:
                    return _failed("executing", str(e), text)
            else:
                edits.append(Edit(kind=proposed.kind, path=proposed.path, content=proposed.content))

        return {"edits": edits, "reasoning": execution.reasoning}

    async def apply_node(state: AgentState) -> dict[str, Any]:
        edits = state.get("edits", [])
        store.apply_all(state["project_id"], edits)

        if sync is None or target is None:
            return {"status": "applied", "remote_refs": [], "sync_failures": {}}

        report = await sync.mirror(target, edits)
        if not report.ok:
            logger.warning(
                "%d of %d edit(s) for %s were not mirrored", len(report.failures), len(edits), state["project_id"]
            )
        return {"status": "applied", "remote_refs": report.refs, "sync_failures": report.failures}

    workflow = StateGraph(AgentState)

    workflow.add_node("plan", plan_node)
    workflow.add_node("gather", gather_node)
    workflow.add_node("execute", execute_node)
    workflow.add_node("apply", apply_node)

    workflow.set_entry_point("plan")
    workflow.add_conditional_edges("plan", _route("gather"), {"gather": "gather", "failed": END})
    workflow.add_conditional_edges("gather", _route("execute"), {"execute": "execute", "failed": END})
    workflow.add_conditional_edges("execute", _route("apply"), {"apply": "apply", "failed": END})
    workflow.add_edge("apply", END)

    return workflow.compile()


async def run_agent(
    task: str,
    project_id: str,
    *,
    llm: LLM,
    store: WorkspaceStore,
    tools: ToolSet,
    sync: Optional[RemoteSync] = None,
    target: Optional[RepoTarget] = None,
    run_logger: Optional[RunLogger] = None,
) -> ExecutionResult:
    """Run the agent workflow once against a project's workspace.

    Args:
        task: Task description
        project_id: Project ID (an empty workspace is created if missing)
        llm: LLM gateway
        store: Workspace store
        tools: Tool set
        sync: Optional remote sync
        target: Repository to mirror to
        run_logger: Optional run logger

    Returns:
        ExecutionResult
    """
    if not store.has(project_id):
        store.put(project_id, Workspace(project_id))

    run_id = run_logger.start_run(project_id) if run_logger else None

    graph = build_agent_graph(llm, store, tools, sync, target, run_logger)
    state: AgentState = await graph.ainvoke(
        {"task": task, "project_id": project_id, "status": "planning", "run_id": run_id}
    )

    if state.get("status") == "failed":
        result = ExecutionResult(
            success=False,
            error=state.get("error") or "Agent workflow failed",
            raw=state.get("raw"),
            stage=state.get("stage"),
            plan=state.get("plan"),
            run_id=run_id,
        )
    else:
        result = ExecutionResult(
            success=True,
            edits=state.get("edits", []),
            reasoning=state.get("reasoning", ""),
            remote_refs=state.get("remote_refs", []),
            sync_failures=state.get("sync_failures", {}),
            plan=state.get("plan"),
            run_id=run_id,
        )

    if run_logger and run_id:
        run_logger.save_result(run_id, result.model_dump())

    logger.info("Agent run on %s finished: success=%s", project_id, result.success)
    return result
