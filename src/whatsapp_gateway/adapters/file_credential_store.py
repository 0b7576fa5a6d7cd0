"""Filesystem-backed credential store, one JSON document per user."""

import json
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import quote

from whatsapp_gateway.domain.errors import PersistenceError
from whatsapp_gateway.services.sessions import CredentialStore

_CREDS_FILE = "creds.json"


@dataclass
class FileCredentialStore(CredentialStore):
    """Stores provider auth material under ``<base_dir>/<user>/creds.json``."""

    base_dir: Path

    def load(self, user_id: str) -> dict[str, object]:
        """Return stored credentials, or an empty dict for a new user."""
        path = self._path(user_id)
        if not path.exists():
            return {}
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise PersistenceError(f"Failed to read credentials: {exc}") from exc

    def save(self, user_id: str, credentials: dict[str, object]) -> None:
        """Write credentials, replacing the previous document atomically."""
        path = self._path(user_id)
        tmp_path = path.with_suffix(".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(credentials), encoding="utf-8")
            tmp_path.replace(path)
        except (OSError, TypeError) as exc:
            raise PersistenceError(f"Failed to write credentials: {exc}") from exc

    def _path(self, user_id: str) -> Path:
        # Percent-encode so user ids can never escape base_dir.
        safe_name = quote(user_id, safe="").replace(".", "%2E")
        return self.base_dir / safe_name / _CREDS_FILE
