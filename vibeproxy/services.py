"""Application-wide collaborators shared by the HTTP handlers."""

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from vibeproxy.config import Config
from vibeproxy.github import GitHubClient
from vibeproxy.intent import IntentClassifier, KeywordIntentClassifier
from vibeproxy.llm import LLM
from vibeproxy.projects import ProjectRegistry
from vibeproxy.sessions import InMemorySessionStore, SessionStore, SupabaseSessionStore
from vibeproxy.tools.toolset import ToolSet
from vibeproxy.utils.logging import RunLogger
from vibeproxy.workspace import WorkspaceStore

logger = logging.getLogger(__name__)

GitHubFactory = Callable[[str], GitHubClient]


@dataclass
class Services:
    """Everything a request handler needs, created once at startup."""

    config: Config
    llm: LLM
    store: WorkspaceStore
    tools: ToolSet
    projects: ProjectRegistry
    sessions: SessionStore
    github_factory: GitHubFactory
    classifier: IntentClassifier = field(default_factory=KeywordIntentClassifier)
    run_logger: Optional[RunLogger] = None

    async def aclose(self) -> None:
        """Release long-lived HTTP clients."""
        close = getattr(self.sessions, "aclose", None)
        if close is not None:
            await close()


def build_services(config: Config) -> Services:
    """Wire the default collaborators for a configuration.

    Args:
        config: Loaded configuration

    Returns:
        Services
    """
    llm = LLM.from_config(config)
    store = WorkspaceStore()

    if config.has_database:
        logger.info("Persisting chat sessions to Supabase")
        sessions: SessionStore = SupabaseSessionStore(config.supabase_url, config.supabase_anon_key)
    else:
        sessions = InMemorySessionStore()

    def github_factory(token: str) -> GitHubClient:
        return GitHubClient(token, config.github_api_url)

    return Services(
        config=config,
        llm=llm,
        store=store,
        tools=ToolSet(store, llm, config.web_fetch_chars),
        projects=ProjectRegistry(),
        sessions=sessions,
        github_factory=github_factory,
        run_logger=RunLogger(config.runs_dir) if config.runs_dir else None,
    )
