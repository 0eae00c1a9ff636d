"""Application state, events, and the reducer that applies them.

All client state lives in one immutable ``AppState``. Controllers never
mutate it directly; they dispatch events through a ``Store``, which runs
``reduce()`` and notifies listeners (the view layer).

Session lifecycle::

    ANONYMOUS --SessionRestored / LoginSucceeded--> AUTHENTICATED
    AUTHENTICATED --SessionCleared (logout, 401/403)--> ANONYMOUS

Events not listed for the current phase in ``_PHASE_EVENTS`` are dropped,
so a response that resolves after logout cannot leak notes into the
anonymous state.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable
from dataclasses import dataclass, field, replace

from quill.errors import SESSION_EXPIRED_MESSAGE
from quill.models import Note, Session

logger = logging.getLogger(__name__)


class Phase(str, enum.Enum):
    ANONYMOUS = "anonymous"
    AUTHENTICATED = "authenticated"


class Section(str, enum.Enum):
    DASHBOARD = "dashboard"
    NOTES = "notes"
    EDITOR = "editor"
    UPGRADE = "upgrade"


class AuthMode(str, enum.Enum):
    LOGIN = "login"
    SIGNUP = "signup"


# Action names used for busy flags
LOGIN = "login"
SIGNUP = "signup"
FETCH_NOTES = "fetch_notes"
CREATE_NOTE = "create_note"
UPDATE_NOTE = "update_note"
DELETE_NOTE = "delete_note"
UPGRADE = "upgrade"


@dataclass(frozen=True)
class AppState:
    session: Session | None = None
    notes: tuple[Note, ...] = ()
    editing_note_id: str | None = None
    section: Section = Section.DASHBOARD
    auth_mode: AuthMode = AuthMode.LOGIN
    error: str = ""
    success: str = ""
    # One entry per in-flight action; the same action may appear twice
    busy: tuple[str, ...] = ()
    # Bumped on every list request and whenever the session changes
    notes_generation: int = 0

    @property
    def phase(self) -> Phase:
        return Phase.AUTHENTICATED if self.session is not None else Phase.ANONYMOUS

    @property
    def editing_note(self) -> Note | None:
        if self.editing_note_id is None:
            return None
        return next((n for n in self.notes if n.id == self.editing_note_id), None)

    def is_busy(self, action: str) -> bool:
        return action in self.busy

    def find_note(self, note_id: str) -> Note | None:
        return next((n for n in self.notes if n.id == note_id), None)


# ── Events ────────────────────────────────────────────────────


@dataclass(frozen=True)
class ActionStarted:
    action: str
    clear_messages: bool = True


@dataclass(frozen=True)
class ActionFinished:
    action: str


@dataclass(frozen=True)
class Failed:
    message: str


@dataclass(frozen=True)
class Dismissed:
    pass


@dataclass(frozen=True)
class AuthModeToggled:
    pass


@dataclass(frozen=True)
class SessionRestored:
    session: Session


@dataclass(frozen=True)
class LoginSucceeded:
    session: Session
    message: str = ""


@dataclass(frozen=True)
class SessionCleared:
    expired: bool = False


@dataclass(frozen=True)
class PlanUpgraded:
    session: Session
    message: str = "Successfully upgraded to PRO plan!"


@dataclass(frozen=True)
class NotesRequested:
    pass


@dataclass(frozen=True)
class NotesLoaded:
    token: str
    generation: int
    notes: tuple[Note, ...] = ()


@dataclass(frozen=True)
class NoteCreated:
    token: str
    note: Note


@dataclass(frozen=True)
class NoteUpdated:
    token: str
    note: Note


@dataclass(frozen=True)
class NoteDeleted:
    token: str
    note_id: str


@dataclass(frozen=True)
class EditStarted:
    note_id: str


@dataclass(frozen=True)
class EditCancelled:
    pass


@dataclass(frozen=True)
class ComposeStarted:
    pass


@dataclass(frozen=True)
class Navigated:
    section: Section


Event = (
    ActionStarted
    | ActionFinished
    | Failed
    | Dismissed
    | AuthModeToggled
    | SessionRestored
    | LoginSucceeded
    | SessionCleared
    | PlanUpgraded
    | NotesRequested
    | NotesLoaded
    | NoteCreated
    | NoteUpdated
    | NoteDeleted
    | EditStarted
    | EditCancelled
    | ComposeStarted
    | Navigated
)

_ALWAYS = {ActionStarted, ActionFinished, Failed, Dismissed, SessionCleared}

_PHASE_EVENTS: dict[Phase, set[type]] = {
    Phase.ANONYMOUS: _ALWAYS | {AuthModeToggled, SessionRestored, LoginSucceeded},
    Phase.AUTHENTICATED: _ALWAYS
    | {
        PlanUpgraded,
        NotesRequested,
        NotesLoaded,
        NoteCreated,
        NoteUpdated,
        NoteDeleted,
        EditStarted,
        EditCancelled,
        ComposeStarted,
        Navigated,
    },
}


# ── Reducer ───────────────────────────────────────────────────


def _owns(state: AppState, token: str) -> bool:
    """True if a response issued with ``token`` belongs to the active session."""
    return state.session is not None and state.session.token == token


def _without_stale_edit(state: AppState) -> AppState:
    if state.editing_note_id is not None and state.editing_note is None:
        return replace(state, editing_note_id=None, section=Section.NOTES)
    return state


def _action_started(state: AppState, event: ActionStarted) -> AppState:
    busy = state.busy + (event.action,)
    if event.clear_messages:
        return replace(state, busy=busy, error="", success="")
    return replace(state, busy=busy)


def _action_finished(state: AppState, event: ActionFinished) -> AppState:
    busy = list(state.busy)
    if event.action in busy:
        busy.remove(event.action)
    return replace(state, busy=tuple(busy))


def _failed(state: AppState, event: Failed) -> AppState:
    return replace(state, error=event.message, success="")


def _dismissed(state: AppState, event: Dismissed) -> AppState:
    return replace(state, error="", success="")


def _auth_mode_toggled(state: AppState, event: AuthModeToggled) -> AppState:
    mode = AuthMode.SIGNUP if state.auth_mode is AuthMode.LOGIN else AuthMode.LOGIN
    return replace(state, auth_mode=mode, error="", success="")


def _session_restored(state: AppState, event: SessionRestored) -> AppState:
    return replace(state, session=event.session, notes=(), section=Section.DASHBOARD)


def _login_succeeded(state: AppState, event: LoginSucceeded) -> AppState:
    return replace(
        state,
        session=event.session,
        notes=(),
        editing_note_id=None,
        section=Section.DASHBOARD,
        error="",
        success=event.message,
        notes_generation=state.notes_generation + 1,
    )


def _session_cleared(state: AppState, event: SessionCleared) -> AppState:
    return AppState(
        error=SESSION_EXPIRED_MESSAGE if event.expired else "",
        busy=state.busy,
        notes_generation=state.notes_generation + 1,
    )


def _plan_upgraded(state: AppState, event: PlanUpgraded) -> AppState:
    if not _owns(state, event.session.token):
        return state
    return replace(state, session=event.session, error="", success=event.message)


def _notes_requested(state: AppState, event: NotesRequested) -> AppState:
    return replace(state, notes_generation=state.notes_generation + 1)


def _notes_loaded(state: AppState, event: NotesLoaded) -> AppState:
    if not _owns(state, event.token):
        return state
    if event.generation != state.notes_generation:
        logger.debug(
            "Dropping stale notes list (generation %d, latest %d)",
            event.generation,
            state.notes_generation,
        )
        return state
    return _without_stale_edit(replace(state, notes=event.notes))


def _note_created(state: AppState, event: NoteCreated) -> AppState:
    if not _owns(state, event.token):
        return state
    return replace(
        state,
        notes=state.notes + (event.note,),
        section=Section.NOTES,
        error="",
        success="Note created successfully!",
    )


def _note_updated(state: AppState, event: NoteUpdated) -> AppState:
    if not _owns(state, event.token):
        return state
    notes = tuple(event.note if n.id == event.note.id else n for n in state.notes)
    return replace(
        state,
        notes=notes,
        editing_note_id=None,
        section=Section.NOTES,
        error="",
        success="Note updated successfully!",
    )


def _note_deleted(state: AppState, event: NoteDeleted) -> AppState:
    if not _owns(state, event.token):
        return state
    notes = tuple(n for n in state.notes if n.id != event.note_id)
    state = replace(state, notes=notes, error="", success="Note deleted successfully!")
    if state.editing_note_id == event.note_id:
        return replace(state, editing_note_id=None, section=Section.NOTES)
    return state


def _edit_started(state: AppState, event: EditStarted) -> AppState:
    if state.find_note(event.note_id) is None:
        return state
    return replace(state, editing_note_id=event.note_id, section=Section.EDITOR)


def _edit_cancelled(state: AppState, event: EditCancelled) -> AppState:
    return replace(state, editing_note_id=None, section=Section.NOTES)


def _compose_started(state: AppState, event: ComposeStarted) -> AppState:
    return replace(state, editing_note_id=None, section=Section.EDITOR)


def _navigated(state: AppState, event: Navigated) -> AppState:
    if event.section is Section.UPGRADE and not state.session.is_admin:
        return state
    return replace(state, section=event.section)


_HANDLERS: dict[type, Callable[[AppState, object], AppState]] = {
    ActionStarted: _action_started,
    ActionFinished: _action_finished,
    Failed: _failed,
    Dismissed: _dismissed,
    AuthModeToggled: _auth_mode_toggled,
    SessionRestored: _session_restored,
    LoginSucceeded: _login_succeeded,
    SessionCleared: _session_cleared,
    PlanUpgraded: _plan_upgraded,
    NotesRequested: _notes_requested,
    NotesLoaded: _notes_loaded,
    NoteCreated: _note_created,
    NoteUpdated: _note_updated,
    NoteDeleted: _note_deleted,
    EditStarted: _edit_started,
    EditCancelled: _edit_cancelled,
    ComposeStarted: _compose_started,
    Navigated: _navigated,
}


def reduce(state: AppState, event: Event) -> AppState:
    """Apply one event, returning the next state. Pure."""
    if type(event) not in _PHASE_EVENTS[state.phase]:
        logger.debug("Ignoring %s in %s phase", type(event).__name__, state.phase.value)
        return state
    return _HANDLERS[type(event)](state, event)


# ── Store ─────────────────────────────────────────────────────

Listener = Callable[[AppState], None]


@dataclass
class Store:
    """Holds the current AppState; the only place it changes."""

    state: AppState = field(default_factory=AppState)
    _listeners: list[Listener] = field(default_factory=list, repr=False)

    def dispatch(self, event: Event) -> AppState:
        self.state = reduce(self.state, event)
        for listener in list(self._listeners):
            listener(self.state)
        return self.state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
