"""Domain types (session identity, notes) and parsing from API payloads. No I/O."""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any

logger = logging.getLogger(__name__)


class Role(str, enum.Enum):
    ADMIN = "ADMIN"
    MEMBER = "MEMBER"


class Plan(str, enum.Enum):
    FREE = "FREE"
    PRO = "PRO"


# ── Session ──────────────────────────────────────────────────


@dataclass(frozen=True)
class Session:
    """Authenticated identity plus its bearer credential.

    ``plan`` is only known after a successful upgrade; login and signup
    responses do not carry it.
    """

    email: str
    role: Role
    tenant_slug: str
    token: str
    plan: Plan | None = None

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    @property
    def is_pro(self) -> bool:
        return self.plan is Plan.PRO

    def with_plan(self, plan: Plan) -> Session:
        return replace(self, plan=plan)

    def identity(self) -> dict[str, str]:
        """Identity record as persisted next to the token."""
        record = {
            "email": self.email,
            "role": self.role.value,
            "tenantSlug": self.tenant_slug,
        }
        if self.plan is not None:
            record["plan"] = self.plan.value
        return record


def _parse_role(value: Any) -> Role:
    try:
        return Role(value)
    except ValueError:
        logger.warning("Unknown role %r, treating as MEMBER", value)
        return Role.MEMBER


def _parse_plan(value: Any) -> Plan | None:
    if value is None:
        return None
    try:
        return Plan(value)
    except ValueError:
        logger.warning("Unknown plan %r, ignoring", value)
        return None


def _require_str(data: dict, key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value:
        raise ValueError(f"missing or invalid field: {key}")
    return value


def parse_auth_response(data: Any) -> Session:
    """Build a Session from a /login or /signup success body.

    Raises ValueError when the payload lacks the token or identity fields.
    """
    if not isinstance(data, dict):
        raise ValueError("auth response is not an object")
    return Session(
        email=_require_str(data, "email"),
        role=_parse_role(data.get("role")),
        tenant_slug=_require_str(data, "tenantSlug"),
        token=_require_str(data, "token"),
        plan=_parse_plan(data.get("plan")),
    )


def restore_session(token: str, identity: Any) -> Session:
    """Rebuild a Session from persisted values. Raises ValueError if corrupt."""
    if not token:
        raise ValueError("empty token")
    if not isinstance(identity, dict):
        raise ValueError("identity record is not an object")
    return Session(
        email=_require_str(identity, "email"),
        role=_parse_role(identity.get("role")),
        tenant_slug=_require_str(identity, "tenantSlug"),
        token=token,
        plan=_parse_plan(identity.get("plan")),
    )


# ── Notes ────────────────────────────────────────────────────


@dataclass(frozen=True)
class Note:
    id: str
    title: str
    content: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


_EXCESS_FRACTION = re.compile(r"(\.\d{6})\d+")


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp; None for missing or unreadable values."""
    if not isinstance(value, str) or not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    # The backend may send nanoseconds; datetime stops at microseconds
    text = _EXCESS_FRACTION.sub(r"\1", text)
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        logger.debug("Unparseable timestamp: %r", value)
        return None


def parse_note(data: Any) -> Note:
    """Parse a single note object. Raises ValueError on a malformed payload."""
    if not isinstance(data, dict):
        raise ValueError("note is not an object")
    note_id = data.get("id")
    if note_id is None or note_id == "":
        raise ValueError("note has no id")
    return Note(
        id=str(note_id),
        title=str(data.get("title") or ""),
        content=str(data.get("content") or ""),
        created_at=parse_timestamp(data.get("createdAt")),
        updated_at=parse_timestamp(data.get("updatedAt")),
    )


def parse_notes(data: Any) -> list[Note]:
    if not isinstance(data, list):
        raise ValueError("notes response is not a list")
    return [parse_note(item) for item in data]
