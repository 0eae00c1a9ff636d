"""Tests for the notes controller against the fake backend."""

from __future__ import annotations

import asyncio

import pytest
import pytest_asyncio

from quill.app import Quill
from quill.entitlement import LIMIT_REACHED_MESSAGE, can_create_note
from quill.errors import SESSION_EXPIRED_MESSAGE
from quill.notes import FETCH_FAILED_MESSAGE
from quill.state import Phase, Section


@pytest_asyncio.fixture
async def admin(app: Quill) -> Quill:
    await app.session.login("admin@acme.test", "password")
    return app


def _local(app: Quill) -> list[tuple[str, str, str]]:
    return [(n.id, n.title, n.content) for n in app.state.notes]


def _remote(backend, email: str = "admin@acme.test") -> list[tuple[str, str, str]]:
    return [(n["id"], n["title"], n["content"]) for n in backend.listed(email)]


class TestCrud:
    @pytest.mark.asyncio
    async def test_local_list_tracks_backend(self, admin: Quill, backend):
        assert await admin.notes.create("one", "1")
        assert await admin.notes.create("two", "2")
        first = admin.state.notes[0].id
        assert await admin.notes.update(first, "one!", "uno")
        assert await admin.notes.delete(admin.state.notes[1].id)
        assert await admin.notes.create("three", "3")

        assert _local(admin) == _remote(backend)

    @pytest.mark.asyncio
    async def test_create(self, admin: Quill):
        assert await admin.notes.submit("Groceries", "milk")
        assert admin.state.notes[-1].title == "Groceries"
        assert admin.state.success == "Note created successfully!"
        assert admin.state.section is Section.NOTES

    @pytest.mark.asyncio
    async def test_submit_updates_note_in_edit(self, admin: Quill, backend):
        await admin.notes.create("draft", "d")
        note_id = admin.state.notes[0].id
        assert admin.notes.begin_edit(note_id)
        assert admin.state.section is Section.EDITOR

        assert await admin.notes.submit("final", "f")

        assert _local(admin) == [(note_id, "final", "f")]
        assert admin.state.editing_note_id is None
        assert admin.state.success == "Note updated successfully!"

    @pytest.mark.asyncio
    async def test_delete(self, admin: Quill, backend):
        await admin.notes.create("gone", "g")
        assert await admin.notes.delete(admin.state.notes[0].id)
        assert admin.state.notes == ()
        assert admin.state.success == "Note deleted successfully!"

    @pytest.mark.asyncio
    async def test_delete_note_in_edit_leaves_editor(self, admin: Quill):
        await admin.notes.create("open", "o")
        note_id = admin.state.notes[0].id
        admin.notes.begin_edit(note_id)

        assert await admin.notes.delete(note_id)

        assert admin.state.editing_note_id is None
        assert admin.state.section is Section.NOTES

    @pytest.mark.asyncio
    async def test_not_found_keeps_session(self, admin: Quill):
        assert not await admin.notes.delete("missing")
        assert admin.state.error == "Failed to delete note (404): Note not found"
        assert admin.state.phase is Phase.AUTHENTICATED

    @pytest.mark.asyncio
    async def test_invalid_response_leaves_list_unchanged(self, admin: Quill, backend):
        await admin.notes.create("kept", "k")
        before = admin.state.notes
        backend.force("POST", "/notes", 201, "<html/>")

        assert not await admin.notes.create("lost", "l")
        assert admin.state.notes == before
        assert admin.state.error == "Received invalid response from server"

    @pytest.mark.asyncio
    async def test_begin_edit_unknown(self, admin: Quill):
        assert not admin.notes.begin_edit("nope")
        assert admin.state.editing_note_id is None

    @pytest.mark.asyncio
    async def test_cancel_edit(self, admin: Quill):
        await admin.notes.create("n", "c")
        admin.notes.begin_edit(admin.state.notes[0].id)
        admin.notes.cancel_edit()
        assert admin.state.editing_note_id is None
        assert admin.state.section is Section.NOTES

    @pytest.mark.asyncio
    async def test_not_logged_in(self, app: Quill):
        assert not await app.notes.create("t", "c")
        assert app.state.error == "No authentication token found. Please log in again."


class TestFetch:
    @pytest.mark.asyncio
    async def test_failure_message(self, admin: Quill, backend):
        backend.force("GET", "/notes", 500, "boom")
        assert not await admin.notes.fetch()
        assert admin.state.error == FETCH_FAILED_MESSAGE
        assert admin.state.phase is Phase.AUTHENTICATED

    @pytest.mark.asyncio
    async def test_last_issued_fetch_wins(self, admin: Quill, backend):
        backend.add_note("admin@acme.test", "late")
        real_list = admin.gateway.list_notes
        release_first = asyncio.Event()
        calls = 0

        async def slow_then_fast(token):
            nonlocal calls
            calls += 1
            if calls == 1:
                stale = await real_list(token)
                await release_first.wait()
                return stale[:0]
            return await real_list(token)

        admin.gateway.list_notes = slow_then_fast
        first = asyncio.create_task(admin.notes.fetch())
        await asyncio.sleep(0.05)
        await admin.notes.fetch()
        release_first.set()
        await first

        assert [n.title for n in admin.state.notes] == ["late"]
        assert not admin.state.is_busy("fetch_notes")

    @pytest.mark.asyncio
    async def test_create_during_login_fetch_keeps_server_notes(self, app: Quill, backend):
        backend.add_note("admin@acme.test", "old1")
        backend.add_note("admin@acme.test", "old2")
        real_list = app.gateway.list_notes
        holding = asyncio.Event()
        release = asyncio.Event()
        calls = 0

        async def held_first(token):
            nonlocal calls
            calls += 1
            notes = await real_list(token)
            if calls == 1:
                holding.set()
                await release.wait()
            return notes

        app.gateway.list_notes = held_first
        login = asyncio.create_task(app.session.login("admin@acme.test", "password"))
        await holding.wait()

        assert await app.notes.create("new", "n")
        release.set()
        await login

        assert [n.title for n in app.state.notes] == ["old1", "old2", "new"]
        assert _local(app) == _remote(backend)
        assert not app.state.is_busy("fetch_notes")

    @pytest.mark.asyncio
    async def test_delete_during_fetch_keeps_server_notes(self, admin: Quill, backend):
        await admin.notes.create("keep", "k")
        await admin.notes.create("drop", "d")
        real_list = admin.gateway.list_notes
        holding = asyncio.Event()
        release = asyncio.Event()
        calls = 0

        async def held_first(token):
            nonlocal calls
            calls += 1
            notes = await real_list(token)
            if calls == 1:
                holding.set()
                await release.wait()
            return notes

        admin.gateway.list_notes = held_first
        fetch = asyncio.create_task(admin.notes.fetch())
        await holding.wait()

        assert await admin.notes.delete(admin.state.notes[1].id)
        release.set()
        await fetch

        assert _local(admin) == _remote(backend)
        assert [n.title for n in admin.state.notes] == ["keep"]


class TestSessionExpiry:
    @pytest.mark.asyncio
    async def test_update_403_clears_everything(self, admin: Quill, backend):
        await admin.notes.create("mine", "m")
        note_id = admin.state.notes[0].id
        admin.notes.begin_edit(note_id)
        backend.force("PUT", f"/notes/{note_id}", 403, "Access denied")

        assert not await admin.notes.submit("edited", "e")

        assert admin.state.phase is Phase.ANONYMOUS
        assert admin.state.notes == ()
        assert admin.state.editing_note_id is None
        assert admin.state.error == SESSION_EXPIRED_MESSAGE
        assert admin.storage.load() is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "method,path,status",
        [("GET", "/notes", 401), ("POST", "/notes", 403), ("DELETE", "/notes/n1", 401)],
    )
    async def test_any_rejection_invalidates(self, admin: Quill, backend, method, path, status):
        backend.add_note("admin@acme.test", "seed")
        await admin.notes.fetch()
        backend.force(method, path, status)

        if method == "GET":
            await admin.notes.fetch()
        elif method == "POST":
            await admin.notes.create("t", "c")
        else:
            await admin.notes.delete("n1")

        assert admin.state.phase is Phase.ANONYMOUS
        assert admin.state.notes == ()
        assert admin.state.error == SESSION_EXPIRED_MESSAGE
        assert admin.storage.load() is None


class TestEntitlement:
    @pytest.mark.asyncio
    async def test_submit_blocked_at_free_limit(self, admin: Quill, backend):
        for i in range(3):
            await admin.notes.create(f"n{i}", "c")
        assert not can_create_note(admin.state)
        requests = len(backend.requests)

        assert not await admin.notes.submit("fourth", "c")

        assert admin.state.error == LIMIT_REACHED_MESSAGE
        assert len(backend.requests) == requests

    @pytest.mark.asyncio
    async def test_forced_create_reaches_server(self, admin: Quill, backend):
        for i in range(3):
            await admin.notes.create(f"n{i}", "c")

        # The server decides: here it refuses
        assert not await admin.notes.create("fourth", "c")
        assert admin.state.error == "Note limit reached for FREE plan"

        # and here it accepts
        backend.enforce_limit = False
        assert await admin.notes.create("fourth", "c")
        assert len(admin.state.notes) == 4

    @pytest.mark.asyncio
    async def test_editing_allowed_at_limit(self, admin: Quill):
        for i in range(3):
            await admin.notes.create(f"n{i}", "c")
        admin.notes.begin_edit(admin.state.notes[0].id)

        assert can_create_note(admin.state)
        assert await admin.notes.submit("renamed", "c")

    @pytest.mark.asyncio
    async def test_upgrade_unblocks(self, admin: Quill):
        for i in range(3):
            await admin.notes.create(f"n{i}", "c")
        await admin.session.upgrade_plan()

        assert can_create_note(admin.state)
        assert await admin.notes.submit("fourth", "c")
