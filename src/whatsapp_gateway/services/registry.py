"""In-memory registry of linking sessions keyed by user id."""

from dataclasses import dataclass, field

from whatsapp_gateway.domain.sessions import SessionRecord


@dataclass
class SessionRegistry:
    """Single source of truth for which users are linking or linked.

    Written only by the session manager. Access happens on one event loop,
    so no lock is needed.
    """

    _records: dict[str, SessionRecord] = field(default_factory=dict)

    def get(self, user_id: str) -> SessionRecord | None:
        """Return the record for a user, if present."""
        return self._records.get(user_id)

    def put(self, user_id: str, record: SessionRecord) -> None:
        """Store the record for a user, replacing any previous one."""
        self._records[user_id] = record

    def remove(self, user_id: str) -> None:
        """Drop the record for a user, if present."""
        self._records.pop(user_id, None)

    def has(self, user_id: str) -> bool:
        """Return true when the user has a record."""
        return user_id in self._records

    def __len__(self) -> int:
        return len(self._records)
