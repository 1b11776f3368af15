"""Tests for chat session stores."""

import json

import httpx
import pytest

from vibeproxy.errors import NotFoundError, UpstreamError
from vibeproxy.sessions import InMemorySessionStore, SupabaseSessionStore


async def test_in_memory_round_trip():
    """Test creating a session and appending messages in order."""
    sessions = InMemorySessionStore()
    session = await sessions.create_session("proj", user_id="u1")

    await sessions.add_message(session.id, "user", "hi", "general")
    await sessions.add_message(session.id, "assistant", "hello")

    messages = await sessions.list_messages(session.id)
    assert [(m.role, m.content) for m in messages] == [("user", "hi"), ("assistant", "hello")]
    assert (await sessions.get_session(session.id)).user_id == "u1"


async def test_in_memory_unknown_session():
    """Test that unknown sessions raise NotFoundError."""
    sessions = InMemorySessionStore()

    with pytest.raises(NotFoundError):
        await sessions.add_message("missing", "user", "hi")


def supabase_store(handler):
    http = httpx.AsyncClient(base_url="https://db.test/rest/v1", transport=httpx.MockTransport(handler))
    return SupabaseSessionStore("https://db.test", "anon", client=http)


async def test_supabase_inserts_rows():
    """Test that sessions and messages are inserted through PostgREST."""
    requests = []

    def handler(request):
        requests.append((request.method, request.url.path, json.loads(request.content)))
        return httpx.Response(201)

    store = supabase_store(handler)
    session = await store.create_session("proj")
    await store.add_message(session.id, "user", "hi", "general")
    await store.aclose()

    assert requests[0][:2] == ("POST", "/rest/v1/chat_sessions")
    assert requests[0][2]["project_id"] == "proj"
    assert requests[1][:2] == ("POST", "/rest/v1/chat_messages")
    assert requests[1][2]["intent"] == "general"


async def test_supabase_missing_session():
    """Test that an empty select means the session does not exist."""
    store = supabase_store(lambda request: httpx.Response(200, json=[]))

    with pytest.raises(NotFoundError):
        await store.get_session("nope")


async def test_supabase_error_status():
    """Test that PostgREST errors become UpstreamError."""
    store = supabase_store(lambda request: httpx.Response(401, json={"message": "bad key"}))

    with pytest.raises(UpstreamError) as exc_info:
        await store.list_messages("s1")

    assert exc_info.value.status == 401
