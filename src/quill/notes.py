"""Notes controller: list/create/update/delete through the gateway, plus edit mode."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from quill.actions import run_action
from quill.entitlement import LIMIT_REACHED_MESSAGE, can_create_note
from quill.gateway import NotesGateway
from quill.session import SessionManager
from quill.state import (
    CREATE_NOTE,
    DELETE_NOTE,
    FETCH_NOTES,
    UPDATE_NOTE,
    ComposeStarted,
    EditCancelled,
    EditStarted,
    Failed,
    Navigated,
    NoteCreated,
    NoteDeleted,
    NotesLoaded,
    NotesRequested,
    NoteUpdated,
    Section,
    Store,
)

logger = logging.getLogger(__name__)

FETCH_FAILED_MESSAGE = "Failed to fetch notes. Please try again."


class NotesController:
    """Operations on the active session's notes.

    Every request carries the token current when it was issued; responses
    for a token that is no longer active are dropped by the reducer.
    """

    def __init__(self, store: Store, gateway: NotesGateway, session: SessionManager) -> None:
        self._store = store
        self._gateway = gateway
        self._session = session

    def _require_token(self) -> str | None:
        token = self._session.token
        if token is None:
            self._store.dispatch(Failed("No authentication token found. Please log in again."))
        return token

    async def fetch(self) -> bool:
        """Reload the list. Only the most recently issued fetch may land."""
        token = self._require_token()
        if token is None:
            return False

        self._store.dispatch(NotesRequested())
        generation = self._store.state.notes_generation

        async def call() -> None:
            notes = await self._gateway.list_notes(token)
            logger.debug("Fetched %d notes (generation %d)", len(notes), generation)
            self._store.dispatch(NotesLoaded(token, generation, tuple(notes)))

        return await run_action(
            self._store,
            FETCH_NOTES,
            call,
            on_expired=lambda: self._session.expire(token),
            failure_message=FETCH_FAILED_MESSAGE,
            exclusive=False,
            clear_messages=False,
        )

    # ── Edit mode ─────────────────────────────────────────────

    def new_note(self) -> None:
        self._store.dispatch(ComposeStarted())

    def begin_edit(self, note_id: str) -> bool:
        if self._store.state.find_note(note_id) is None:
            self._store.dispatch(Failed(f"Note {note_id} not found."))
            return False
        self._store.dispatch(EditStarted(note_id))
        return True

    def cancel_edit(self) -> None:
        self._store.dispatch(EditCancelled())

    def navigate(self, section: Section) -> None:
        self._store.dispatch(Navigated(section))

    # ── Mutations ─────────────────────────────────────────────

    async def _mutate(self, action: str, call: Callable[[], Awaitable[None]], token: str) -> bool:
        """Run a create/update/delete call.

        A list fetch still in flight was issued before this change reached
        the server and would overwrite it, so a fresh fetch supersedes it.
        """
        ok = await run_action(
            self._store, action, call, on_expired=lambda: self._session.expire(token)
        )
        if ok and self._store.state.is_busy(FETCH_NOTES):
            logger.debug("%s overtook an in-flight notes fetch, reloading", action)
            await self.fetch()
        return ok

    async def submit(self, title: str, content: str) -> bool:
        """Save the editor form: update the note in edit, otherwise create."""
        if self._store.state.editing_note_id is not None:
            return await self.update(self._store.state.editing_note_id, title, content)
        if not can_create_note(self._store.state):
            self._store.dispatch(Failed(LIMIT_REACHED_MESSAGE))
            return False
        return await self.create(title, content)

    async def create(self, title: str, content: str) -> bool:
        token = self._require_token()
        if token is None:
            return False

        async def call() -> None:
            note = await self._gateway.create_note(token, title, content)
            logger.info("Created note %s", note.id)
            self._store.dispatch(NoteCreated(token, note))

        return await self._mutate(CREATE_NOTE, call, token)

    async def update(self, note_id: str, title: str, content: str) -> bool:
        token = self._require_token()
        if token is None:
            return False

        async def call() -> None:
            note = await self._gateway.update_note(token, note_id, title, content)
            logger.info("Updated note %s", note.id)
            self._store.dispatch(NoteUpdated(token, note))

        return await self._mutate(UPDATE_NOTE, call, token)

    async def delete(self, note_id: str) -> bool:
        token = self._require_token()
        if token is None:
            return False

        async def call() -> None:
            await self._gateway.delete_note(token, note_id)
            logger.info("Deleted note %s", note_id)
            self._store.dispatch(NoteDeleted(token, note_id))

        return await self._mutate(DELETE_NOTE, call, token)
