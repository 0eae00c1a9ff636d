"""Plan and role gating for the view layer.

Advisory only: the backend enforces the real limit. Nothing here stops a
direct gateway call.
"""

from __future__ import annotations

from quill.models import Session
from quill.state import AppState

FREE_NOTE_LIMIT = 3

MEMBER_UPGRADE_MESSAGE = "Contact your admin to upgrade to PRO plan."
LIMIT_REACHED_MESSAGE = "You've reached the note limit for the FREE plan."


def limit_reached(state: AppState) -> bool:
    """FREE-plan note limit hit for the current tenant (editing aside)."""
    if state.session is None or state.session.is_pro:
        return False
    return len(state.notes) >= FREE_NOTE_LIMIT


def can_create_note(state: AppState) -> bool:
    """Whether the note form accepts input.

    Closed exactly when the limit is reached, no note is in edit, and the
    plan is not PRO. Editing an existing note is never blocked.
    """
    if state.editing_note_id is not None:
        return True
    return not limit_reached(state)


def can_upgrade(session: Session | None) -> bool:
    return session is not None and session.is_admin
