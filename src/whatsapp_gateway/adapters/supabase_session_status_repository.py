"""Supabase-backed WhatsApp session status repository."""

from dataclasses import dataclass
from datetime import UTC, datetime

import httpx
from postgrest.exceptions import APIError
from supabase import Client

from whatsapp_gateway.domain.errors import PersistenceError
from whatsapp_gateway.services.sessions import SessionStatusRepository


@dataclass
class SupabaseSessionStatusRepository(SessionStatusRepository):
    """Supabase implementation for the whatsapp_sessions table."""

    client: Client

    def upsert_session_status(
        self, user_id: str, status: str, extra: dict[str, object] | None = None
    ) -> None:
        """Insert or update the status row for a user."""
        payload: dict[str, object] = {
            "user_id": user_id,
            "status": status,
            "updated_at": datetime.now(tz=UTC).isoformat(),
        }
        payload.update(extra or {})
        try:
            self.client.table("whatsapp_sessions").upsert(
                payload, on_conflict="user_id"
            ).execute()
        except (APIError, httpx.HTTPError) as exc:
            raise PersistenceError(f"Failed to upsert session status: {exc}") from exc
