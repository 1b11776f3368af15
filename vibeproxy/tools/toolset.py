"""Named agent tools over the workspace store."""

import logging
import re
from typing import Any, Optional

import httpx

from vibeproxy.constants import AGENT_TOOLS, DEFAULT_WEB_FETCH_CHARS
from vibeproxy.errors import NotFoundError, PatchError
from vibeproxy.llm import LLM
from vibeproxy.tools.web import fetch_page
from vibeproxy.utils.diffs import apply_patch
from vibeproxy.workspace import Edit, WorkspaceStore, normalize_path

logger = logging.getLogger(__name__)

# Tools the gathering phase may dispatch; patch produces edits instead.
GATHER_TOOLS = ("search", "tree", "cat", "locate", "definition", "references", "think", "web")

DEFINITION_TEMPLATES = (
    r"\b(?:function|class|def|interface|type|enum|struct|fn)\s+{symbol}\b",
    r"\b(?:const|let|var)\s+{symbol}\s*=",
    r"^\s*{symbol}\s*[:=]\s*(?:async\s+)?(?:function\b|\()",
)

THINK_PROMPT = """Think step-by-step about the following problem in the context of a code repository.
List the key considerations, the likely approach and anything that could go wrong.
Keep the answer under 300 words.

Problem: {problem}"""


class ToolSet:
    """Registry of the tools available to the agent workflow."""

    def __init__(
        self,
        store: WorkspaceStore,
        llm: Optional[LLM] = None,
        web_fetch_chars: int = DEFAULT_WEB_FETCH_CHARS,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the tool set.

        Args:
            store: Workspace store the tools read from
            llm: LLM gateway used by the think tool
            web_fetch_chars: Character budget of the web tool
            http_client: Optional shared HTTP client for the web tool
        """
        self.store = store
        self.llm = llm
        self.web_fetch_chars = web_fetch_chars
        self.http_client = http_client

    @staticmethod
    def describe() -> dict[str, str]:
        """Tool name to one-line description."""
        return dict(AGENT_TOOLS)

    async def dispatch(self, name: str, project_id: str, target: str) -> Optional[Any]:
        """Run a gathering tool by name.

        Args:
            name: Tool name
            project_id: Project whose workspace the tool reads
            target: Tool argument (query, path, symbol, URL...)

        Returns:
            Tool output, or None for names that are not gathering tools
        """
        if name not in GATHER_TOOLS:
            logger.debug("Skipping unknown tool %r", name)
            return None

        if name == "think":
            return await self.think(target)
        if name == "web":
            return await self.web(target)

        return getattr(self, name)(project_id, target)

    def search(self, project_id: str, query: str) -> list[dict[str, Any]]:
        return self.store.search(project_id, query)

    def tree(self, project_id: str, target: str = "") -> dict[str, Any]:
        return self.store.list_tree(project_id)

    def cat(self, project_id: str, paths: str | list[str]) -> dict[str, str]:
        """Read files; ``paths`` may be a comma-separated string."""
        if isinstance(paths, str):
            paths = [p.strip() for p in paths.split(",") if p.strip()]
        return self.store.read(project_id, paths)

    def locate(self, project_id: str, task_text: str) -> list[dict[str, Any]]:
        return self.store.locate(project_id, task_text)

    def definition(self, project_id: str, symbol: str) -> list[dict[str, Any]]:
        """Find lines that look like the definition of ``symbol``.

        Returns:
            [{file, line, text}] with 1-based line numbers
        """
        escaped = re.escape(symbol.strip())
        patterns = [re.compile(t.format(symbol=escaped)) for t in DEFINITION_TEMPLATES]
        return self._scan(project_id, lambda line: any(p.search(line) for p in patterns))

    def references(self, project_id: str, symbol: str) -> list[dict[str, Any]]:
        """Find every line mentioning ``symbol`` as a whole word.

        Returns:
            [{file, line, text}] with 1-based line numbers
        """
        pattern = re.compile(rf"(?<![\w$]){re.escape(symbol.strip())}(?![\w$])")
        return self._scan(project_id, lambda line: pattern.search(line) is not None)

    async def think(self, problem: str) -> str:
        """Ask the model to reason about a problem."""
        if self.llm is None:
            return "Thinking is unavailable: no model configured"
        response = await self.llm.complete(THINK_PROMPT.format(problem=problem))
        return response["content"]

    async def web(self, url: str) -> str:
        """Fetch a page as truncated plain text; failures come back as text."""
        return await fetch_page(url.strip(), self.web_fetch_chars, self.http_client)

    def patch(self, project_id: str, path: str, diff: str) -> Edit:
        """Apply a unified diff to a workspace file without writing it.

        Args:
            project_id: Project ID
            path: File path
            diff: Unified diff for that single file

        Returns:
            Update edit carrying the patched content

        Raises:
            PatchError: If the file is missing or the diff does not apply
        """
        path = normalize_path(path)
        try:
            files = self.store.get(project_id).files
        except NotFoundError:
            files = {}

        if path not in files:
            # A diff against /dev/null creates the file
            if "@@ -0,0 " not in diff:
                raise PatchError(path, "file not found in workspace")
            original = ""
        else:
            original = files[path]

        success, patched, error = apply_patch(original, diff)
        if not success:
            raise PatchError(path, error)

        kind = "update" if path in files else "create"
        return Edit(kind=kind, path=path, content=patched)

    def _scan(self, project_id: str, predicate) -> list[dict[str, Any]]:
        hits = []
        for path, content in self.store.get(project_id).files.items():
            for number, line in enumerate(content.splitlines(), start=1):
                if predicate(line):
                    hits.append({"file": path, "line": number, "text": line})
        return hits
