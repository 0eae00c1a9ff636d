"""Session manager: the authenticated identity, its bearer token and persistence.

The token is opaque: it is never decoded or checked locally. A restored
session is trusted until the backend answers 401/403, at which point
``invalidate(expired=True)`` discards it.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from quill.actions import run_action
from quill.gateway import NotesGateway
from quill.models import Plan, Session
from quill.state import (
    LOGIN,
    SIGNUP,
    UPGRADE,
    Failed,
    LoginSucceeded,
    PlanUpgraded,
    SessionCleared,
    SessionRestored,
    Store,
)
from quill.storage import SessionStorage

logger = logging.getLogger(__name__)

# Reloads the notes list for the active session
NotesLoader = Callable[[], Awaitable[bool]]


class SessionManager:
    """Owns the single process-wide session."""

    def __init__(self, store: Store, gateway: NotesGateway, storage: SessionStorage) -> None:
        self._store = store
        self._gateway = gateway
        self._storage = storage
        self._load_notes: NotesLoader | None = None

    def set_notes_loader(self, loader: NotesLoader) -> None:
        self._load_notes = loader

    @property
    def session(self) -> Session | None:
        return self._store.state.session

    @property
    def token(self) -> str | None:
        session = self.session
        return session.token if session else None

    async def _refresh_notes(self) -> None:
        if self._load_notes is not None:
            await self._load_notes()

    # ── Lifecycle ─────────────────────────────────────────────

    async def restore(self) -> bool:
        """Adopt a persisted session, if any, and load its notes.

        Returns True if a session was restored.
        """
        session = self._storage.load()
        if session is None:
            return False
        logger.info("Restored session for %s (tenant=%s)", session.email, session.tenant_slug)
        self._store.dispatch(SessionRestored(session))
        await self._refresh_notes()
        return True

    async def login(self, email: str, password: str) -> bool:
        async def call() -> None:
            session = await self._gateway.login(email, password)
            self._establish(session, "Login successful!")

        ok = await run_action(self._store, LOGIN, call, on_expired=self.expire)
        if ok:
            await self._refresh_notes()
        return ok

    async def signup(self, email: str, password: str, tenant_name: str) -> bool:
        async def call() -> None:
            session = await self._gateway.signup(email, password, tenant_name)
            self._establish(session, "Signup successful! Welcome to Notes App.")

        ok = await run_action(self._store, SIGNUP, call, on_expired=self.expire)
        if ok:
            await self._refresh_notes()
        return ok

    def _establish(self, session: Session, message: str) -> None:
        self._storage.save(session)
        logger.info("Logged in as %s (%s, tenant=%s)", session.email, session.role.value,
                    session.tenant_slug)
        self._store.dispatch(LoginSucceeded(session, message))

    def invalidate(self, expired: bool = False) -> None:
        """Drop the session everywhere: storage, state, notes, edit mode."""
        self._storage.clear()
        self._store.dispatch(SessionCleared(expired=expired))
        if expired:
            logger.warning("Session expired; credential discarded")
        else:
            logger.info("Logged out")

    def logout(self) -> None:
        self.invalidate(expired=False)

    def expire(self, token: str | None = None) -> None:
        """Handle a 401/403. ``token`` is the credential the rejected call used;
        a rejection of an already replaced credential is ignored."""
        if token is not None and token != self.token:
            logger.debug("Ignoring rejection of a superseded credential")
            return
        self.invalidate(expired=True)

    # ── Plan ──────────────────────────────────────────────────

    async def upgrade_plan(self) -> bool:
        """Upgrade the tenant to PRO and mark the local session accordingly.

        The local plan is set optimistically; the notes re-fetch afterwards is
        the only reconciliation with the backend.
        """
        session = self.session
        if session is None:
            self._store.dispatch(Failed("You must be logged in to upgrade."))
            return False

        async def call() -> None:
            await self._gateway.upgrade_tenant(session.token, session.tenant_slug)
            upgraded = session.with_plan(Plan.PRO)
            if self.token == session.token:
                self._storage.save(upgraded)
            self._store.dispatch(PlanUpgraded(upgraded))

        ok = await run_action(
            self._store, UPGRADE, call, on_expired=lambda: self.expire(session.token)
        )
        if ok:
            await self._refresh_notes()
        return ok

    async def health_check(self) -> bool:
        return await self._gateway.health()
