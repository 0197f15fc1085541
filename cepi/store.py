"""Optional persistence of events and agent output in Supabase.

Uses the supabase-py async client. Tables:
events(id, user_id, input_params, actuals) and
agent_results(id, event_id, agent_name, response_text).
"""

import asyncio
import logging
from typing import Any, Optional

import httpx
from supabase import AsyncClient, PostgrestAPIError, acreate_client

from cepi.config import Config
from cepi.errors import UpstreamAuthError, UpstreamError, UpstreamResponseError, UpstreamTransportError

logger = logging.getLogger(__name__)

SERVICE = "supabase"
STORE_TIMEOUT_MS = 8000

# PostgREST codes for a missing, expired or unauthorized key
AUTH_ERROR_CODES = {"401", "403", "PGRST301", "PGRST302", "42501"}


class SupabaseStore:
    """Records events, post-event actuals and agent results."""
    __slots__ = ("_url", "_key", "_enabled", "_client", "_client_lock")

    def __init__(self, config: Config, client: Optional[AsyncClient] = None):
        self._url = config.supabase_url.rstrip("/")
        self._key = config.supabase_key
        self._enabled = config.is_persistence_available()
        self._client = client
        self._client_lock = asyncio.Lock()
        if not self._enabled:
            logger.info("SupabaseStore: persistence disabled (SUPABASE_URL/SUPABASE_KEY not set)")

    @property
    def available(self) -> bool:
        return self._enabled

    async def _get_client(self) -> AsyncClient:
        async with self._client_lock:
            if self._client is None:
                try:
                    self._client = await acreate_client(self._url, self._key)
                except Exception as e:
                    raise UpstreamResponseError(f"Supabase client init failed: {e}", service=SERVICE) from e
                logger.info(f"SupabaseStore: connected to {self._url}")
            return self._client

    async def _execute(self, table: str, build) -> list[dict[str, Any]]:
        """Run one query built by ``build(client.table(table))`` and return its rows."""
        client = await self._get_client()
        try:
            response = await asyncio.wait_for(build(client.table(table)).execute(), STORE_TIMEOUT_MS / 1000)
        except PostgrestAPIError as e:
            error_class = UpstreamAuthError if str(e.code) in AUTH_ERROR_CODES else UpstreamResponseError
            raise error_class(f"Supabase rejected {table} query: {e.message}", service=SERVICE) from e
        except asyncio.TimeoutError:
            raise UpstreamTransportError(
                f"Supabase did not answer within {STORE_TIMEOUT_MS}ms", service=SERVICE
            ) from None
        except httpx.HTTPError as e:
            raise UpstreamTransportError(f"Supabase unreachable: {e}", service=SERVICE) from e
        return response.data or []

    async def create_event(self, user_id: str, input_params: dict[str, Any]) -> str:
        """Insert an event row and return its id.

        Raises:
            UpstreamError: Supabase rejected or never answered the insert.
        """
        row = {"user_id": user_id, "input_params": input_params}
        rows = await self._execute("events", lambda query: query.insert(row))
        if not rows or not isinstance(rows[0], dict) or "id" not in rows[0]:
            raise UpstreamResponseError("Supabase did not return the new event id", service=SERVICE)
        event_id = str(rows[0]["id"])
        logger.info(f"SupabaseStore: stored event {event_id} for user {user_id}")
        return event_id

    async def record_actuals(self, event_id: str, actuals: dict[str, Any]) -> bool:
        """Attach post-event actuals. Returns False when no row matched.

        Raises:
            UpstreamError: Supabase rejected or never answered the update.
        """
        rows = await self._execute("events", lambda query: query.update({"actuals": actuals}).eq("id", event_id))
        return bool(rows)

    async def record_agent_result(self, event_id: str, agent_name: str, response_text: str) -> bool:
        """Store one agent output. Failures are logged, never raised."""
        if not self._enabled:
            return False
        row = {"event_id": event_id, "agent_name": agent_name, "response_text": response_text}
        try:
            await self._execute("agent_results", lambda query: query.insert(row))
        except UpstreamError as e:
            logger.warning(f"SupabaseStore: could not record {agent_name} result for {event_id}: {e}")
            return False
        return True
