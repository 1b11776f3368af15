"""Project chat handler: routes each message by detected intent."""

import logging
from typing import TYPE_CHECKING, Any, Optional

from vibeproxy.errors import NotFoundError
from vibeproxy.github import GitHubClient, RemoteSync
from vibeproxy.graph import ExecutionResult, run_agent
from vibeproxy.intent import Intent
from vibeproxy.llm import LLM
from vibeproxy.projects import ProjectRecord, ensure_workspace
from vibeproxy.sessions import ChatMessage

if TYPE_CHECKING:
    from vibeproxy.services import Services

logger = logging.getLogger(__name__)

CHAT_SYSTEM_PROMPT = """You are a helpful coding assistant for the project "{name}", a {complexity} web application
stored in the GitHub repository {repo}.

Answer questions about the project concisely. When the user wants a change made, tell them to describe
it (for example "add a contact form"); saying "approve" commits the current files and "deploy" explains hosting.
"""

DEPLOY_INSTRUCTIONS = """Your project lives at {repo}. To deploy it:

1. Vercel: import the repository at https://vercel.com/new and accept the detected React settings.
2. Netlify: choose "Import from Git" at https://app.netlify.com/start, build command `npm run build`, publish directory `build`.
{backend}
Every change you approve is committed to the repository, so connected hosts redeploy automatically."""

BACKEND_NOTE = (
    "3. Backend: deploy `backend/` to a Node host (Render, Railway or Fly.io), set DATABASE_URL and JWT_SECRET "
    "from `.env.example`, then run `npx prisma migrate deploy`.\n"
)


class ChatHandler:
    """Handles one chat turn for a project."""

    HISTORY_LIMIT = 10

    def __init__(self, services: "Services"):
        """Initialize chat handler.

        Args:
            services: Application services
        """
        self.services = services

    async def handle(
        self,
        project: ProjectRecord,
        message: str,
        github: GitHubClient,
        session_id: Optional[str] = None,
    ) -> dict[str, Any]:
        """Classify the message, act on it and persist both turns.

        Args:
            project: Target project
            message: User message
            github: Authenticated GitHub client
            session_id: Existing session to continue, if any

        Returns:
            Dict with session_id, intent, response and an optional result
        """
        sessions = self.services.sessions
        if session_id:
            session = await sessions.get_session(session_id)
            if session.project_id != project.id:
                raise NotFoundError("session", session_id)
        else:
            session = await sessions.create_session(project.id, project.user_id)

        detected = self.services.classifier.classify(message)
        logger.info("Chat message for %s classified as %s (%s)", project.id, detected.intent.value, detected.reasoning)
        await sessions.add_message(session.id, "user", message, detected.intent.value)

        result: Optional[dict[str, Any]] = None
        if detected.intent == Intent.APPROVE:
            response, result = await self._approve(project, github)
        elif detected.intent == Intent.DEPLOY:
            response = self._deploy(project)
        elif detected.intent == Intent.MODIFY:
            execution = await self._modify(project, message, github)
            response = self.summarize(execution)
            result = execution.to_response()
        else:
            history = await sessions.list_messages(session.id)
            response = await self._general(project, history)

        await sessions.add_message(session.id, "assistant", response, detected.intent.value)

        reply: dict[str, Any] = {
            "session_id": session.id,
            "intent": detected.intent.value,
            "response": response,
        }
        if result is not None:
            reply["result"] = result
        return reply

    async def _approve(self, project: ProjectRecord, github: GitHubClient) -> tuple[str, dict[str, Any]]:
        workspace = await ensure_workspace(self.services.store, project, github)
        report = await RemoteSync(github).mirror_files(project.target, workspace.files, kind="update")

        committed = len(report.refs) - len(report.failures)
        response = f"Committed {committed} file(s) to {project.github_repo}."
        if report.failures:
            response += f" {len(report.failures)} file(s) failed: {', '.join(report.failures)}."
        return response, {"commits": report.refs, "sync_failures": report.failures}

    def _deploy(self, project: ProjectRecord) -> str:
        backend = BACKEND_NOTE if project.complexity == "complex" else ""
        return DEPLOY_INSTRUCTIONS.format(repo=project.github_repo, backend=backend)

    async def _modify(self, project: ProjectRecord, task: str, github: GitHubClient) -> ExecutionResult:
        await ensure_workspace(self.services.store, project, github)
        return await run_agent(
            task,
            project.id,
            llm=self.services.llm,
            store=self.services.store,
            tools=self.services.tools,
            sync=RemoteSync(github),
            target=project.target,
            run_logger=self.services.run_logger,
        )

    async def _general(self, project: ProjectRecord, history: list[ChatMessage]) -> str:
        messages = [
            {"role": m.role, "content": m.content}
            for m in history[-self.HISTORY_LIMIT:]
            if m.role in ("user", "assistant")
        ]
        # The API requires the conversation to open with a user turn
        while messages and messages[0]["role"] != "user":
            messages.pop(0)

        system = CHAT_SYSTEM_PROMPT.format(
            name=project.name, complexity=project.complexity, repo=project.github_repo
        )
        response = await self.services.llm.chat(messages, system=system)
        return LLM.extract_text(response)

    @staticmethod
    def summarize(execution: ExecutionResult) -> str:
        """Render an agent run as a chat reply."""
        if not execution.success:
            return f"I couldn't complete that change ({execution.stage}): {execution.error}"

        if not execution.edits:
            return execution.reasoning or "No changes were needed."

        lines = [f"Applied {len(execution.edits)} change(s):"]
        lines.extend(f"- {edit.kind} {edit.path}" for edit in execution.edits)
        if execution.sync_failures:
            lines.append(f"Failed to commit: {', '.join(execution.sync_failures)}")
        if execution.reasoning:
            lines.extend(["", execution.reasoning])
        return "\n".join(lines)
