"""Quill application: wires config, storage, gateway and controllers around one Store.

Responsibilities:
1. Build the gateway and session storage from configuration
2. Own the single Store every controller dispatches into
3. Restore a persisted session on start, close the HTTP session on stop
4. Run one connector (the view layer) between the two
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from quill.config import QuillConfig
from quill.gateway import NotesGateway
from quill.notes import NotesController
from quill.session import SessionManager
from quill.state import AppState, Dismissed, Store
from quill.storage import LocalStorage, SessionStorage

if TYPE_CHECKING:
    from quill.connectors.base import Connector

logger = logging.getLogger(__name__)


class Quill:
    """Application root, shared by every connector."""

    def __init__(self, config: QuillConfig, gateway: NotesGateway | None = None) -> None:
        self.config = config
        self.store = Store()
        self.gateway = gateway or NotesGateway(config.backend.url)
        self.storage = SessionStorage(LocalStorage(config.storage.session_file))
        self.session = SessionManager(self.store, self.gateway, self.storage)
        self.notes = NotesController(self.store, self.gateway, self.session)
        self.session.set_notes_loader(self.notes.fetch)

    @property
    def state(self) -> AppState:
        return self.store.state

    def dismiss(self) -> None:
        self.store.dispatch(Dismissed())

    # ── Lifecycle ─────────────────────────────────────────────

    async def start(self) -> None:
        logger.info("Quill starting (backend=%s)", self.config.backend.url)
        await self.session.restore()

    async def stop(self) -> None:
        await self.gateway.close()
        logger.info("Quill stopped.")

    async def run(self, connector: Connector) -> None:
        """Start, hand control to ``connector`` until it returns, then stop."""
        logger.info("Running connector: %s", connector.name)
        try:
            await self.start()
            await connector.start(self)
        finally:
            await connector.stop()
            await self.stop()
