"""Notes gateway: a thin aiohttp wrapper over the notes backend HTTP API.

Each call returns its parsed payload or raises one of the ``quill.errors``
types; nothing here retries, caches, or enforces plan limits.
"""

from __future__ import annotations

import json
import logging
from typing import Any
from urllib.parse import quote

import aiohttp

from quill.errors import (
    INVALID_RESPONSE_MESSAGE,
    ApiError,
    InvalidResponseError,
    SessionExpiredError,
    TransportError,
)
from quill.models import Note, Session, parse_auth_response, parse_note, parse_notes

logger = logging.getLogger(__name__)

_AUTH_REJECTED = (401, 403)


def error_message(body: str, failure: str, status: int) -> str:
    """User-facing message for a non-2xx response.

    Prefers ``{"message": ...}`` from a JSON body, then the raw body text,
    then a status-coded fallback.
    """
    try:
        data = json.loads(body)
    except ValueError:
        text = body.strip()
        return f"{failure} ({status}): {text}" if text else f"{failure} ({status})"
    if isinstance(data, dict) and isinstance(data.get("message"), str) and data["message"]:
        return data["message"]
    return f"{failure} ({status})"


class NotesGateway:
    """HTTP client for the notes backend.

    The underlying ``aiohttp.ClientSession`` is created lazily on first use
    unless one is injected; call ``close()`` when done.
    """

    def __init__(self, base_url: str, session: aiohttp.ClientSession | None = None) -> None:
        self.base_url = base_url.rstrip("/")
        self._session = session
        self._owns_session = False

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            # No request timeout: a hung request stays pending
            self._session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=None))
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
        self._session = None
        self._owns_session = False

    # ── Core request ──────────────────────────────────────────

    async def _request(
        self,
        method: str,
        path: str,
        *,
        failure: str,
        token: str | None = None,
        payload: dict | None = None,
        expect_json: bool = True,
        invalid_message: str = INVALID_RESPONSE_MESSAGE,
    ) -> Any:
        """Send one request and classify the outcome.

        ``token`` marks the call as authenticated: only then do 401/403 mean
        the session has expired.
        """
        headers = {"Content-Type": "application/json"}
        if token is not None:
            headers["Authorization"] = f"Bearer {token}"

        session = await self._get_session()
        url = f"{self.base_url}{path}"
        try:
            async with session.request(method, url, json=payload, headers=headers) as resp:
                status = resp.status
                body = await resp.text(errors="replace")
        except aiohttp.ClientError as e:
            logger.error("%s %s failed: %s", method, path, e)
            raise TransportError(self.base_url) from e

        logger.debug("%s %s -> %d", method, path, status)

        if token is not None and status in _AUTH_REJECTED:
            logger.warning("%s %s rejected credential (%d)", method, path, status)
            raise SessionExpiredError(status)
        if not 200 <= status < 300:
            raise ApiError(status, error_message(body, failure, status))
        if not expect_json:
            return None

        try:
            return json.loads(body)
        except ValueError:
            logger.error("%s %s returned non-JSON body (%d chars)", method, path, len(body))
            raise InvalidResponseError(invalid_message)

    # ── Unauthenticated ───────────────────────────────────────

    async def health(self) -> bool:
        """Connectivity probe. True if /health answers 2xx."""
        try:
            session = await self._get_session()
            async with session.get(f"{self.base_url}/health") as resp:
                return 200 <= resp.status < 300
        except aiohttp.ClientError as e:
            logger.warning("Health check against %s failed: %s", self.base_url, e)
            return False

    async def login(self, email: str, password: str) -> Session:
        invalid = f"{INVALID_RESPONSE_MESSAGE} during login"
        data = await self._request(
            "POST",
            "/login",
            failure="Login failed",
            payload={"email": email, "password": password},
            invalid_message=invalid,
        )
        try:
            return parse_auth_response(data)
        except ValueError as e:
            logger.error("Malformed login response: %s", e)
            raise InvalidResponseError(invalid) from e

    async def signup(self, email: str, password: str, tenant_name: str) -> Session:
        invalid = f"{INVALID_RESPONSE_MESSAGE} during signup"
        data = await self._request(
            "POST",
            "/signup",
            failure="Signup failed",
            payload={"email": email, "password": password, "tenantName": tenant_name},
            invalid_message=invalid,
        )
        try:
            return parse_auth_response(data)
        except ValueError as e:
            logger.error("Malformed signup response: %s", e)
            raise InvalidResponseError(invalid) from e

    # ── Authenticated ─────────────────────────────────────────

    async def list_notes(self, token: str) -> list[Note]:
        data = await self._request("GET", "/notes", failure="Failed to fetch notes", token=token)
        try:
            return parse_notes(data)
        except ValueError as e:
            logger.error("Malformed notes list: %s", e)
            raise InvalidResponseError() from e

    async def create_note(self, token: str, title: str, content: str) -> Note:
        data = await self._request(
            "POST",
            "/notes",
            failure="Failed to create note",
            token=token,
            payload={"title": title, "content": content},
        )
        try:
            return parse_note(data)
        except ValueError as e:
            logger.error("Malformed created note: %s", e)
            raise InvalidResponseError() from e

    async def update_note(self, token: str, note_id: str, title: str, content: str) -> Note:
        data = await self._request(
            "PUT",
            f"/notes/{quote(note_id, safe='')}",
            failure="Failed to update note",
            token=token,
            payload={"title": title, "content": content},
        )
        try:
            return parse_note(data)
        except ValueError as e:
            logger.error("Malformed updated note: %s", e)
            raise InvalidResponseError() from e

    async def delete_note(self, token: str, note_id: str) -> None:
        await self._request(
            "DELETE",
            f"/notes/{quote(note_id, safe='')}",
            failure="Failed to delete note",
            token=token,
            expect_json=False,
        )

    async def upgrade_tenant(self, token: str, tenant_slug: str) -> None:
        await self._request(
            "POST",
            f"/tenants/{quote(tenant_slug, safe='')}/upgrade",
            failure="Failed to upgrade",
            token=token,
            expect_json=False,
        )
