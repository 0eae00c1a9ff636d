"""Durable local state: a string key-value file and the session record kept in it."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from quill.models import Session, restore_session

logger = logging.getLogger(__name__)

TOKEN_KEY = "token"
USER_KEY = "user"


class LocalStorage:
    """String-keyed, string-valued entries persisted as one JSON object.

    Every write rewrites the whole file via a temp file + rename.
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable state file %s: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring malformed state file %s", self.path)
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def _save(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
        tmp.replace(self.path)

    def get_item(self, key: str) -> str | None:
        return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def remove_item(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._save(data)


class SessionStorage:
    """Persists a Session as two entries: the raw token and the identity JSON."""

    def __init__(self, storage: LocalStorage) -> None:
        self._storage = storage

    def save(self, session: Session) -> None:
        self._storage.set_item(TOKEN_KEY, session.token)
        self._storage.set_item(USER_KEY, json.dumps(session.identity()))

    def load(self) -> Session | None:
        """Return the persisted Session, or None if absent.

        A corrupt record is removed so the next start is clean.
        """
        token = self._storage.get_item(TOKEN_KEY)
        user = self._storage.get_item(USER_KEY)
        if not token or not user:
            return None
        try:
            return restore_session(token, json.loads(user))
        except ValueError as e:
            logger.warning("Discarding corrupt persisted session: %s", e)
            self.clear()
            return None

    def clear(self) -> None:
        self._storage.remove_item(TOKEN_KEY)
        self._storage.remove_item(USER_KEY)
