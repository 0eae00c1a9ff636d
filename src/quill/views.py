"""Plain-text screens rendered from AppState (no I/O).

Notes are numbered from 1 in list order; the CLI uses those numbers to
address them.
"""

from __future__ import annotations

from quill.entitlement import (
    FREE_NOTE_LIMIT,
    LIMIT_REACHED_MESSAGE,
    MEMBER_UPGRADE_MESSAGE,
    can_create_note,
    can_upgrade,
    limit_reached,
)
from quill.models import Note, Plan
from quill.state import (
    CREATE_NOTE,
    FETCH_NOTES,
    LOGIN,
    SIGNUP,
    UPDATE_NOTE,
    UPGRADE,
    AppState,
    AuthMode,
    Phase,
    Section,
)

APP_TITLE = "Notes App"
RECENT_NOTES = 3

TEST_ACCOUNTS = [
    ("admin@acme.test", "Admin", "Acme"),
    ("user@acme.test", "Member", "Acme"),
    ("admin@globex.test", "Admin", "Globex"),
    ("user@globex.test", "Member", "Globex"),
]


def _heading(text: str) -> list[str]:
    return [text, "=" * len(text)]


def _format_note(index: int, note: Note, *, full_timestamp: bool = True) -> list[str]:
    if note.created_at is None:
        created = "unknown"
    elif full_timestamp:
        created = note.created_at.strftime("%Y-%m-%d %H:%M")
    else:
        created = note.created_at.strftime("%Y-%m-%d")
    lines = [f"[{index}] {note.title}"]
    lines.extend(f"    {line}" for line in (note.content.splitlines() or [""]))
    lines.append(f"    Created: {created}")
    return lines


def render_messages(state: AppState) -> list[str]:
    lines = []
    if state.error:
        lines.append(f"! {state.error}")
    if state.success:
        lines.append(f"✓ {state.success}")
    return lines


# ── Unauthenticated ───────────────────────────────────────────


def render_auth(state: AppState) -> list[str]:
    lines = _heading(APP_TITLE)
    if state.auth_mode is AuthMode.LOGIN:
        busy = state.is_busy(LOGIN)
        lines += [
            "",
            "Login to Your Account",
            "  login            " + ("Logging in..." if busy else "log in with email and password"),
            "  mode             don't have an account? Sign Up",
            "",
            "Test Accounts:",
        ]
        lines += [
            f"  {email} ({role}, tenant: {tenant}) - password: password"
            for email, role, tenant in TEST_ACCOUNTS
        ]
    else:
        busy = state.is_busy(SIGNUP)
        lines += [
            "",
            "Create New Account",
            "  signup           " + ("Signing up..." if busy else "create an account and tenant"),
            "  mode             already have an account? Login",
        ]
    return lines


# ── Authenticated ─────────────────────────────────────────────


def render_header(state: AppState) -> list[str]:
    session = state.session
    return [f"Welcome, {session.email} ({session.role.value})"]


def render_dashboard(state: AppState) -> list[str]:
    session = state.session
    tenant = session.tenant_slug.upper() if session.tenant_slug else "N/A"
    lines = _heading("Dashboard")
    lines += [
        f"Total Notes : {len(state.notes)}",
        f"Tenant      : {tenant}",
        f"Role        : {session.role.value}",
    ]
    if can_upgrade(session):
        plan = (session.plan or Plan.FREE).value
        lines.append(f"Plan        : {plan}")
        if not session.is_pro:
            lines.append("  Upgrade for unlimited notes: type 'upgrade'")

    lines += ["", "Recent Notes"]
    if state.is_busy(FETCH_NOTES) and not state.notes:
        lines.append("  Loading notes...")
    elif not state.notes:
        lines.append("  No notes yet. Create your first note!")
    else:
        for i, note in enumerate(state.notes[:RECENT_NOTES], start=1):
            lines += _format_note(i, note, full_timestamp=False)
    return lines


def render_notes(state: AppState) -> list[str]:
    lines = _heading("Your Notes")
    if state.is_busy(FETCH_NOTES) and not state.notes:
        lines.append("Loading notes...")
    elif not state.notes:
        lines.append("No notes yet. Create your first note!")
    else:
        for i, note in enumerate(state.notes, start=1):
            lines += _format_note(i, note)
    return lines


def render_editor(state: AppState) -> list[str]:
    editing = state.editing_note
    lines = _heading("Edit Note" if editing else "Create New Note")

    if limit_reached(state) and editing is None:
        lines.append(LIMIT_REACHED_MESSAGE)
        if can_upgrade(state.session):
            lines.append("  Type 'upgrade' to upgrade to PRO plan.")
        else:
            lines.append(f"  {MEMBER_UPGRADE_MESSAGE}")

    if editing is not None:
        busy = state.is_busy(UPDATE_NOTE)
        lines += [
            f"Title   : {editing.title}",
            f"Content : {editing.content}",
            "  save     " + ("Updating..." if busy else "Update Note"),
            "  cancel   Cancel",
        ]
    elif can_create_note(state):
        busy = state.is_busy(CREATE_NOTE)
        lines.append("  save     " + ("Creating..." if busy else "Create Note"))
    else:
        lines.append("  save     (disabled)")
    return lines


def render_upgrade(state: AppState) -> list[str]:
    if not can_upgrade(state.session):
        return [MEMBER_UPGRADE_MESSAGE]
    busy = state.is_busy(UPGRADE)
    lines = _heading("Upgrade Your Plan")
    lines += [
        f"FREE Plan  - {FREE_NOTE_LIMIT} Notes"
        + ("  (current plan)" if not state.session.is_pro else ""),
        f"  ✓ Up to {FREE_NOTE_LIMIT} notes",
        "  ✓ Basic features",
        "  ✗ Unlimited notes",
        "  ✗ Premium support",
        "",
        "PRO Plan   - ∞ Notes" + ("  (current plan)" if state.session.is_pro else ""),
        "  ✓ Unlimited notes",
        "  ✓ All basic features",
        "  ✓ Premium support",
        "  ✓ Advanced features",
        "",
    ]
    if state.session.is_pro:
        lines.append("Your tenant is on the PRO plan.")
    else:
        lines.append(
            "  upgrade  " + ("Upgrading..." if busy else "Upgrade to PRO Plan - $9.99/month")
        )
    return lines


_SECTIONS = {
    Section.DASHBOARD: render_dashboard,
    Section.NOTES: render_notes,
    Section.EDITOR: render_editor,
    Section.UPGRADE: render_upgrade,
}


def render(state: AppState) -> str:
    """Full screen for the current state."""
    if state.phase is Phase.ANONYMOUS:
        lines = render_auth(state)
    else:
        lines = render_header(state) + [""] + _SECTIONS[state.section](state)
    messages = render_messages(state)
    if messages:
        lines = messages + [""] + lines
    return "\n".join(lines)
