"""Tests for Supabase adapter implementations."""

from dataclasses import dataclass, field

import pytest
from postgrest.exceptions import APIError

from whatsapp_gateway.adapters.supabase_message_repository import (
    SupabaseMessageRepository,
)
from whatsapp_gateway.adapters.supabase_session_status_repository import (
    SupabaseSessionStatusRepository,
)
from whatsapp_gateway.domain.errors import PersistenceError


@dataclass
class FakeResponse:
    data: list[dict[str, object]] | None


@dataclass
class FakeTable:
    name: str
    last_action: str | None = None
    last_payload: object | None = None
    last_options: dict[str, object] = field(default_factory=dict)
    error: Exception | None = None

    def insert(self, payload) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_action = "insert"
        self.last_payload = payload
        return self

    def upsert(self, payload, **options) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_action = "upsert"
        self.last_payload = payload
        self.last_options = options
        return self

    def execute(self) -> FakeResponse:
        if self.error is not None:
            raise self.error
        return FakeResponse(data=[])


@dataclass
class FakeSupabaseClient:
    tables: dict[str, FakeTable] = field(default_factory=dict)

    def table(self, name: str) -> FakeTable:
        if name not in self.tables:
            self.tables[name] = FakeTable(name=name)
        return self.tables[name]


def test_session_status_upsert_merges_extra_fields() -> None:
    client = FakeSupabaseClient()
    repository = SupabaseSessionStatusRepository(client)

    repository.upsert_session_status(
        "user-1", "awaiting_scan", {"qr_code": "data:image/png;base64,abc"}
    )

    table = client.tables["whatsapp_sessions"]
    assert table.last_action == "upsert"
    assert table.last_options == {"on_conflict": "user_id"}
    assert table.last_payload["user_id"] == "user-1"
    assert table.last_payload["status"] == "awaiting_scan"
    assert table.last_payload["qr_code"] == "data:image/png;base64,abc"
    assert "updated_at" in table.last_payload


def test_message_insert_payload() -> None:
    client = FakeSupabaseClient()
    repository = SupabaseMessageRepository(client)

    repository.insert_message("user-1", "a@s.whatsapp.net", "hi")

    assert client.tables["messages"].last_payload == {
        "user_id": "user-1",
        "from_number": "a@s.whatsapp.net",
        "message_text": "hi",
        "message_type": "whatsapp",
        "direction": "received",
    }


def test_api_errors_become_persistence_errors() -> None:
    client = FakeSupabaseClient()
    client.table("messages").error = APIError({"message": "permission denied"})
    repository = SupabaseMessageRepository(client)

    with pytest.raises(PersistenceError):
        repository.insert_message("user-1", "a@s.whatsapp.net", "hi")
