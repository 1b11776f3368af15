"""Feature generation handler: one prompt, a file map back, mirrored to GitHub."""

import logging
import re
from typing import TYPE_CHECKING, Any

from vibeproxy.errors import ParseError
from vibeproxy.github import GitHubClient, RemoteSync
from vibeproxy.projects import ProjectRecord, ensure_workspace
from vibeproxy.tools.planner import extract_json
from vibeproxy.workspace import Edit

if TYPE_CHECKING:
    from vibeproxy.services import Services

logger = logging.getLogger(__name__)

CODE_BLOCK_RE = re.compile(r"```[\w+-]*\n(.*?)```", re.DOTALL)

# Where a lone code block goes when the model did not return a file map
FALLBACK_PATHS = {
    "component": "src/components/GeneratedComponent.js",
    "page": "src/pages/GeneratedPage.js",
    "api": "backend/routes/generated.js",
    "database": "backend/prisma/schema.prisma",
    "style": "src/generated.css",
}

KEY_FILES = ("backend/prisma/schema.prisma", "src/App.js")
MAX_KEY_FILE_CHARS = 6000

COMPLEX_STACK = """This is a full-stack application with:
- React frontend with Tailwind CSS
- Express.js backend
- PostgreSQL database with Prisma ORM
- JWT authentication
- RESTful API endpoints
"""


def looks_like_path(key: str) -> bool:
    """Whether a JSON key names a file rather than a prose field like "reasoning"."""
    key = key.strip()
    return bool(key) and " " not in key and ("/" in key or "." in key)


class GenerateHandler:
    """Generates a feature for an existing project in a single model call."""

    def __init__(self, services: "Services"):
        """Initialize generate handler.

        Args:
            services: Application services
        """
        self.services = services

    def build_prompt(self, prompt: str, files: dict[str, str], feature_type: str, complexity: str) -> str:
        """Build a context-aware generation prompt.

        Args:
            prompt: User request
            files: Current workspace files
            feature_type: Kind of feature (component, page, api, database...)
            complexity: Project complexity

        Returns:
            Prompt string
        """
        app_kind = "full-stack" if feature_type == "database" or complexity == "complex" else "React"
        parts = [f"You are building a {complexity} {app_kind} application."]

        if complexity == "complex":
            parts.append(COMPLEX_STACK)

        if files:
            parts.append("Current project structure:")
            parts.extend(f"- {path}" for path in files)
            parts.append("")

        for path in KEY_FILES:
            if path in files:
                parts.append(f"{path}:\n```\n{files[path][:MAX_KEY_FILE_CHARS]}\n```\n")

        parts.append(f"User request: {prompt}\n")

        if feature_type == "database":
            parts.append(
                "Please provide:\n"
                "1. Updated Prisma schema if needed\n"
                "2. Backend API routes\n"
                "3. Frontend components to interact with the new feature\n"
                "4. Any necessary migrations or setup\n"
            )
        else:
            parts.append(f"Please provide the {feature_type} code that integrates seamlessly with the existing codebase.")

        parts.append(
            "Format your response as a JSON object with file paths as keys and complete file contents as values."
        )
        return "\n".join(parts)

    def parse_files(self, text: str, feature_type: str) -> dict[str, str]:
        """Turn the model's response into a file map.

        Prefers a JSON object of path to content; falls back to the first
        fenced code block, stored at a path chosen by feature type.

        Raises:
            ParseError: If the response contains neither
        """
        try:
            data = extract_json(text)
        except ParseError:
            data = {}

        files = {
            path: content
            for path, content in data.items()
            if isinstance(content, str) and looks_like_path(path)
        }
        if files:
            return files

        block = CODE_BLOCK_RE.search(text)
        if block:
            path = FALLBACK_PATHS.get(feature_type, f"src/generated/{feature_type}.js")
            return {path: block.group(1)}

        raise ParseError("Response contains no files or code", raw=text)

    async def handle(
        self, project: ProjectRecord, prompt: str, feature_type: str, github: GitHubClient
    ) -> dict[str, Any]:
        """Generate a feature, apply it to the workspace and commit it.

        Args:
            project: Target project
            prompt: User request
            feature_type: Kind of feature
            github: Authenticated GitHub client

        Returns:
            Response dict
        """
        workspace = await ensure_workspace(self.services.store, project, github)

        contextual_prompt = self.build_prompt(prompt, workspace.files, feature_type, project.complexity)
        response = await self.services.llm.complete(contextual_prompt)
        files = self.parse_files(response["content"], feature_type)

        edits = [
            Edit(kind="update" if path in workspace.files else "create", path=path, content=content)
            for path, content in files.items()
        ]
        self.services.store.apply_all(project.id, edits)

        report = await RemoteSync(github).mirror(project.target, edits)
        logger.info("Generated %d file(s) for %s", len(edits), project.id)

        return {
            "generated_content": response["content"],
            "updated_files": [edit.path for edit in edits],
            "commits": report.refs,
            "sync_failures": report.failures,
            "github_repo_url": project.github_repo,
        }
