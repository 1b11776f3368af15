"""Chat session and message persistence."""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional, Protocol

import httpx
from pydantic import BaseModel, Field

from vibeproxy.errors import NotFoundError, UpstreamError

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ChatSession(BaseModel):
    """A conversation about one project."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    project_id: str
    user_id: Optional[str] = None
    created_at: datetime = Field(default_factory=_now)


class ChatMessage(BaseModel):
    """One persisted chat turn."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    session_id: str
    role: str
    content: str
    intent: Optional[str] = None
    created_at: datetime = Field(default_factory=_now)


class SessionStore(Protocol):
    """Storage for chat sessions and their messages."""

    async def create_session(self, project_id: str, user_id: Optional[str] = None) -> ChatSession: ...

    async def get_session(self, session_id: str) -> ChatSession: ...

    async def add_message(
        self, session_id: str, role: str, content: str, intent: Optional[str] = None
    ) -> ChatMessage: ...

    async def list_messages(self, session_id: str) -> list[ChatMessage]: ...


class InMemorySessionStore:
    """Session store living for the lifetime of the process."""

    def __init__(self):
        self._sessions: dict[str, ChatSession] = {}
        self._messages: dict[str, list[ChatMessage]] = {}

    async def create_session(self, project_id: str, user_id: Optional[str] = None) -> ChatSession:
        session = ChatSession(project_id=project_id, user_id=user_id)
        self._sessions[session.id] = session
        self._messages[session.id] = []
        return session

    async def get_session(self, session_id: str) -> ChatSession:
        try:
            return self._sessions[session_id]
        except KeyError:
            raise NotFoundError("session", session_id) from None

    async def add_message(
        self, session_id: str, role: str, content: str, intent: Optional[str] = None
    ) -> ChatMessage:
        await self.get_session(session_id)
        message = ChatMessage(session_id=session_id, role=role, content=content, intent=intent)
        self._messages[session_id].append(message)
        return message

    async def list_messages(self, session_id: str) -> list[ChatMessage]:
        await self.get_session(session_id)
        return list(self._messages[session_id])


class SupabaseSessionStore:
    """Session store backed by Supabase's PostgREST API.

    Expects two tables: ``chat_sessions`` (id, project_id, user_id, created_at)
    and ``chat_messages`` (id, session_id, role, content, intent, created_at).
    """

    SESSIONS_TABLE = "chat_sessions"
    MESSAGES_TABLE = "chat_messages"

    def __init__(self, url: str, anon_key: str, client: Optional[httpx.AsyncClient] = None):
        """Initialize the store.

        Args:
            url: Supabase project URL
            anon_key: Supabase anonymous key
            client: Optional pre-built HTTP client (used as-is)
        """
        self.client = client or httpx.AsyncClient(
            base_url=f"{url.rstrip('/')}/rest/v1",
            timeout=httpx.Timeout(None),
            headers={
                "apikey": anon_key,
                "Authorization": f"Bearer {anon_key}",
                "Content-Type": "application/json",
            },
        )

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _call(self, method: str, table: str, **kwargs: Any) -> list[dict[str, Any]]:
        try:
            response = await self.client.request(method, f"/{table}", **kwargs)
        except httpx.HTTPError as e:
            logger.error("Supabase %s %s failed: %s", method, table, e)
            raise UpstreamError("supabase", None, str(e)) from e

        if response.status_code >= 400:
            logger.error("Supabase %s %s returned %s", method, table, response.status_code)
            raise UpstreamError("supabase", response.status_code, response.text)
        return response.json() if response.content else []

    async def _insert(self, table: str, row: BaseModel) -> None:
        await self._call(
            "POST",
            table,
            json=row.model_dump(mode="json"),
            headers={"Prefer": "return=minimal"},
        )

    async def create_session(self, project_id: str, user_id: Optional[str] = None) -> ChatSession:
        session = ChatSession(project_id=project_id, user_id=user_id)
        await self._insert(self.SESSIONS_TABLE, session)
        return session

    async def get_session(self, session_id: str) -> ChatSession:
        rows = await self._call("GET", self.SESSIONS_TABLE, params={"id": f"eq.{session_id}", "select": "*"})
        if not rows:
            raise NotFoundError("session", session_id)
        return ChatSession(**rows[0])

    async def add_message(
        self, session_id: str, role: str, content: str, intent: Optional[str] = None
    ) -> ChatMessage:
        message = ChatMessage(session_id=session_id, role=role, content=content, intent=intent)
        await self._insert(self.MESSAGES_TABLE, message)
        return message

    async def list_messages(self, session_id: str) -> list[ChatMessage]:
        rows = await self._call(
            "GET",
            self.MESSAGES_TABLE,
            params={"session_id": f"eq.{session_id}", "select": "*", "order": "created_at.asc"},
        )
        return [ChatMessage(**row) for row in rows]
