"""Supabase-backed inbound message repository."""

from dataclasses import dataclass

import httpx
from postgrest.exceptions import APIError
from supabase import Client

from whatsapp_gateway.domain.errors import PersistenceError
from whatsapp_gateway.services.sessions import MessageRepository


@dataclass
class SupabaseMessageRepository(MessageRepository):
    """Supabase implementation for the messages table."""

    client: Client

    def insert_message(self, user_id: str, from_number: str, text: str) -> None:
        """Store an inbound WhatsApp message."""
        try:
            self.client.table("messages").insert(
                {
                    "user_id": user_id,
                    "from_number": from_number,
                    "message_text": text,
                    "message_type": "whatsapp",
                    "direction": "received",
                }
            ).execute()
        except (APIError, httpx.HTTPError) as exc:
            raise PersistenceError(f"Failed to insert message: {exc}") from exc
