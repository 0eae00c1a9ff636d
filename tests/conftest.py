"""Shared fixtures: an in-process fake of the notes backend."""

from __future__ import annotations

import itertools
import json
from dataclasses import dataclass, field
from pathlib import Path

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from quill.app import Quill
from quill.config import BackendConfig, QuillConfig, StorageConfig


@dataclass
class FakeUser:
    email: str
    password: str
    role: str
    tenant: str


@dataclass
class FakeBackend:
    """Minimal stand-in for the notes API, with hooks to force responses."""

    url: str = ""
    users: dict[str, FakeUser] = field(default_factory=dict)
    plans: dict[str, str] = field(default_factory=dict)
    notes: dict[str, list[dict]] = field(default_factory=dict)  # email -> notes
    tokens: dict[str, str] = field(default_factory=dict)  # token -> email
    # (method, path) -> (status, raw body); consumed once
    forced: dict[tuple[str, str], tuple[int, str]] = field(default_factory=dict)
    requests: list[tuple[str, str, str | None]] = field(default_factory=list)
    enforce_limit: bool = True

    def __post_init__(self) -> None:
        self._ids = itertools.count(1)
        self._tokens = itertools.count(1)
        for email, role, tenant in [
            ("admin@acme.test", "ADMIN", "acme"),
            ("user@acme.test", "MEMBER", "acme"),
            ("admin@globex.test", "ADMIN", "globex"),
            ("user@globex.test", "MEMBER", "globex"),
        ]:
            self.users[email] = FakeUser(email, "password", role, tenant)
            self.plans.setdefault(tenant, "FREE")

    # ── Helpers for tests ─────────────────────────────────────

    def issue_token(self, email: str, token: str | None = None) -> str:
        token = token or f"t{next(self._tokens)}"
        self.tokens[token] = email
        return token

    def add_note(self, email: str, title: str, content: str = "body") -> dict:
        note = {
            "id": f"n{next(self._ids)}",
            "title": title,
            "content": content,
            "createdAt": "2024-05-01T10:00:00.123456789",
            "updatedAt": "2024-05-01T10:00:00",
        }
        self.notes.setdefault(email, []).append(note)
        return note

    def force(self, method: str, path: str, status: int, body: str = "") -> None:
        self.forced[(method, path)] = (status, body)

    def bearer_tokens(self, path: str) -> list[str | None]:
        return [auth for _, p, auth in self.requests if p == path]

    # ── aiohttp app ───────────────────────────────────────────

    def make_app(self) -> web.Application:
        app = web.Application(middlewares=[self._record])
        app.router.add_get("/health", self._health)
        app.router.add_post("/login", self._login)
        app.router.add_post("/signup", self._signup)
        app.router.add_get("/notes", self._list)
        app.router.add_post("/notes", self._create)
        app.router.add_put("/notes/{id}", self._update)
        app.router.add_delete("/notes/{id}", self._delete)
        app.router.add_post("/tenants/{slug}/upgrade", self._upgrade)
        return app

    @web.middleware
    async def _record(self, request: web.Request, handler):
        self.requests.append((request.method, request.path, request.headers.get("Authorization")))
        forced = self.forced.pop((request.method, request.path), None)
        if forced is not None:
            status, body = forced
            return web.Response(status=status, text=body)
        return await handler(request)

    def _auth(self, request: web.Request) -> str:
        header = request.headers.get("Authorization", "")
        token = header.removeprefix("Bearer ")
        email = self.tokens.get(token)
        if email is None:
            raise web.HTTPUnauthorized(text="Authentication required")
        return email

    def _session_body(self, user: FakeUser, token: str) -> dict:
        return {"token": token, "email": user.email, "role": user.role, "tenantSlug": user.tenant}

    async def _health(self, request: web.Request) -> web.Response:
        return web.json_response({"status": "ok"})

    async def _login(self, request: web.Request) -> web.Response:
        body = await request.json()
        user = self.users.get(body.get("email", ""))
        if user is None:
            return web.Response(status=400, text="User not found")
        if user.password != body.get("password"):
            return web.Response(status=401, text="Invalid credentials")
        return web.json_response(self._session_body(user, self.issue_token(user.email)))

    async def _signup(self, request: web.Request) -> web.Response:
        body = await request.json()
        email = body.get("email", "")
        if email in self.users:
            return web.json_response({"message": "User already exists"}, status=400)
        slug = body.get("tenantName", "").strip().lower().replace(" ", "-")
        user = FakeUser(email, body.get("password", ""), "ADMIN", slug)
        self.users[email] = user
        self.plans[slug] = "FREE"
        return web.json_response(self._session_body(user, self.issue_token(email)), status=201)

    async def _list(self, request: web.Request) -> web.Response:
        email = self._auth(request)
        return web.json_response(self.notes.get(email, []))

    async def _create(self, request: web.Request) -> web.Response:
        email = self._auth(request)
        user = self.users[email]
        existing = self.notes.get(email, [])
        if self.enforce_limit and self.plans[user.tenant] == "FREE" and len(existing) >= 3:
            return web.json_response({"message": "Note limit reached for FREE plan"}, status=400)
        body = await request.json()
        note = self.add_note(email, body["title"], body["content"])
        return web.json_response(note, status=201)

    async def _update(self, request: web.Request) -> web.Response:
        email = self._auth(request)
        body = await request.json()
        for note in self.notes.get(email, []):
            if note["id"] == request.match_info["id"]:
                note.update(title=body["title"], content=body["content"])
                return web.json_response(note)
        return web.Response(status=404, text="Note not found")

    async def _delete(self, request: web.Request) -> web.Response:
        email = self._auth(request)
        notes = self.notes.get(email, [])
        for note in notes:
            if note["id"] == request.match_info["id"]:
                notes.remove(note)
                return web.Response(text="Note deleted successfully")
        return web.Response(status=404, text="Note not found")

    async def _upgrade(self, request: web.Request) -> web.Response:
        email = self._auth(request)
        user = self.users[email]
        slug = request.match_info["slug"]
        if user.role != "ADMIN" or user.tenant != slug:
            return web.Response(status=403, text="Only admins can upgrade subscription")
        self.plans[slug] = "PRO"
        return web.Response(text="Tenant upgraded to PRO plan successfully")

    def listed(self, email: str) -> list[dict]:
        """What GET /notes would return for ``email`` (deep copy)."""
        return json.loads(json.dumps(self.notes.get(email, [])))


@pytest_asyncio.fixture
async def backend():
    fake = FakeBackend()
    server = TestServer(fake.make_app())
    await server.start_server()
    fake.url = str(server.make_url("")).rstrip("/")
    yield fake
    await server.close()


@pytest.fixture
def config(tmp_path: Path, backend: FakeBackend) -> QuillConfig:
    return QuillConfig(
        backend=BackendConfig(url=backend.url),
        storage=StorageConfig(state_dir=tmp_path / "state"),
    )


@pytest_asyncio.fixture
async def app(config: QuillConfig):
    quill = Quill(config)
    yield quill
    await quill.stop()
