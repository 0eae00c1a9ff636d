"""Local CLI REPL connector: the interactive view layer."""

from __future__ import annotations

import asyncio
import getpass
import logging
import sys
from collections.abc import Callable
from typing import TYPE_CHECKING

from quill.connectors.base import Command, parse_command
from quill.entitlement import MEMBER_UPGRADE_MESSAGE, can_create_note, can_upgrade
from quill.state import AuthModeToggled, Phase, Section
from quill.views import render

if TYPE_CHECKING:
    from quill.app import Quill

logger = logging.getLogger(__name__)

# Reads one line for a prompt; None on end of input
Prompt = Callable[[str], "str | None"]

HELP_ANONYMOUS = """\
Commands:
  login            log in with email and password
  signup           create an account and tenant
  mode             switch between login and signup
  health           check the backend connection
  dismiss          clear the current message
  exit             quit"""

HELP_AUTHENTICATED = """\
Commands:
  dashboard        overview and recent notes
  notes            list all notes
  refresh          reload notes from the server
  new              open the editor for a new note
  edit <n>         open note <n> in the editor
  save             enter title and content, then save the editor
  cancel           leave edit mode
  delete <n>       delete note <n>
  plans            show plans
  upgrade          upgrade the tenant to PRO (admins)
  logout           end the session
  dismiss          clear the current message
  exit             quit"""


_SECTIONS = {"dashboard": Section.DASHBOARD, "notes": Section.NOTES, "plans": Section.UPGRADE}


def _stdin_prompt(prompt: str) -> str | None:
    sys.stdout.write(prompt)
    sys.stdout.flush()
    raw = sys.stdin.buffer.readline()
    if not raw:
        return None
    return raw.decode("utf-8", errors="replace").rstrip("\n")


def _secret_prompt(prompt: str) -> str | None:
    try:
        return getpass.getpass(prompt)
    except EOFError:
        return None


class CLIConnector:
    """Interactive REPL connector: reads from stdin, writes screens to stdout."""

    def __init__(
        self,
        prompt: Prompt | None = None,
        secret_prompt: Prompt | None = None,
        output: Callable[[str], None] = print,
    ) -> None:
        self._prompt = prompt or _stdin_prompt
        self._secret_prompt = secret_prompt or _secret_prompt
        self._output = output
        self._running = False

    @property
    def name(self) -> str:
        return "cli"

    async def _ask(self, prompt: str, secret: bool = False) -> str | None:
        loop = asyncio.get_running_loop()
        reader = self._secret_prompt if secret else self._prompt
        return await loop.run_in_executor(None, reader, prompt)

    async def _confirm(self, question: str) -> bool:
        answer = await self._ask(f"{question} [y/N] ")
        return answer is not None and answer.strip().lower() in ("y", "yes")

    def _show(self, app: Quill) -> None:
        self._output("")
        self._output(render(app.state))

    async def start(self, app: Quill) -> None:
        self._running = True
        self._output("Quill notes client (type 'help' for commands, 'exit' to quit)")
        self._output("-" * 48)
        self._show(app)

        while self._running:
            try:
                line = await self._ask("\n> ")
            except (EOFError, KeyboardInterrupt):
                self._output("\nBye!")
                break

            if line is None or line.strip().lower() in ("exit", "quit"):
                self._output("Bye!")
                break

            command = parse_command(line)
            if command is None:
                continue

            if await self.handle(app, command):
                self._show(app)

    async def stop(self) -> None:
        self._running = False

    # ── Commands ──────────────────────────────────────────────

    async def handle(self, app: Quill, command: Command) -> bool:
        """Run one command. Returns True if the screen should be redrawn."""
        if command.name == "help":
            phase = app.state.phase
            self._output(HELP_ANONYMOUS if phase is Phase.ANONYMOUS else HELP_AUTHENTICATED)
            return False
        if command.name == "dismiss":
            app.dismiss()
            return True
        if command.name == "health":
            healthy = await app.session.health_check()
            status = "reachable" if healthy else "unreachable"
            self._output(f"Backend {app.config.backend.url} is {status}.")
            return False

        if app.state.phase is Phase.ANONYMOUS:
            handler = self._ANONYMOUS.get(command.name)
        else:
            handler = self._AUTHENTICATED.get(command.name)
        if handler is None:
            self._output(f"Unknown command: {command.name} (type 'help')")
            return False
        return await handler(self, app, command)

    async def _login(self, app: Quill, command: Command) -> bool:
        email = await self._ask("Email: ")
        password = await self._ask("Password: ", secret=True)
        if not email or not password:
            self._output("Email and password are required.")
            return False
        await app.session.login(email.strip(), password)
        return True

    async def _signup(self, app: Quill, command: Command) -> bool:
        email = await self._ask("Email: ")
        password = await self._ask("Password: ", secret=True)
        tenant_name = await self._ask("Tenant name (e.g., My Company): ")
        if not email or not password or not tenant_name:
            self._output("Email, password and tenant name are required.")
            return False
        await app.session.signup(email.strip(), password, tenant_name.strip())
        return True

    async def _toggle_mode(self, app: Quill, command: Command) -> bool:
        app.store.dispatch(AuthModeToggled())
        return True

    async def _section(self, app: Quill, command: Command) -> bool:
        section = _SECTIONS[command.name]
        if section is Section.UPGRADE and not can_upgrade(app.state.session):
            self._output(MEMBER_UPGRADE_MESSAGE)
            return False
        app.notes.navigate(section)
        return True

    async def _refresh(self, app: Quill, command: Command) -> bool:
        await app.notes.fetch()
        return True

    async def _new(self, app: Quill, command: Command) -> bool:
        app.notes.new_note()
        return True

    def _note_id(self, app: Quill, command: Command) -> str | None:
        """Resolve the 1-based note number in the first argument to a note id."""
        if not command.args or not command.args[0].isdigit():
            self._output(f"Usage: {command.name} <n>")
            return None
        index = int(command.args[0])
        if not 1 <= index <= len(app.state.notes):
            self._output(f"No note number {index}.")
            return None
        return app.state.notes[index - 1].id

    async def _edit(self, app: Quill, command: Command) -> bool:
        note_id = self._note_id(app, command)
        if note_id is None:
            return False
        return app.notes.begin_edit(note_id)

    async def _save(self, app: Quill, command: Command) -> bool:
        if app.state.section is not Section.EDITOR and app.state.editing_note_id is None:
            app.notes.new_note()
        state = app.state
        if not can_create_note(state):
            # Form disabled; the redraw shows the limit warning
            return True

        editing = state.editing_note
        title_prompt = f"Title [{editing.title}]: " if editing else "Title: "
        content_prompt = "Content [keep]: " if editing else "Content: "

        title = await self._ask(title_prompt)
        content = await self._ask(content_prompt)
        if editing is not None:
            title = title or editing.title
            content = content or editing.content
        if not title or not content:
            self._output("Title and content are required.")
            return False
        await app.notes.submit(title, content)
        return True

    async def _cancel(self, app: Quill, command: Command) -> bool:
        app.notes.cancel_edit()
        return True

    async def _delete(self, app: Quill, command: Command) -> bool:
        note_id = self._note_id(app, command)
        if note_id is None:
            return False
        if not await self._confirm("Are you sure you want to delete this note?"):
            return False
        await app.notes.delete(note_id)
        return True

    async def _upgrade(self, app: Quill, command: Command) -> bool:
        session = app.state.session
        if not can_upgrade(session):
            self._output(MEMBER_UPGRADE_MESSAGE)
            return False
        if session.is_pro:
            self._output("Your tenant is already on the PRO plan.")
            return False
        app.notes.navigate(Section.UPGRADE)
        self._show(app)
        if not await self._confirm("Are you sure you want to upgrade to PRO plan?"):
            return False
        await app.session.upgrade_plan()
        return True

    async def _logout(self, app: Quill, command: Command) -> bool:
        app.session.logout()
        return True

    _ANONYMOUS = {
        "login": _login,
        "signup": _signup,
        "mode": _toggle_mode,
    }

    _AUTHENTICATED = {
        "dashboard": _section,
        "notes": _section,
        "plans": _section,
        "refresh": _refresh,
        "new": _new,
        "edit": _edit,
        "save": _save,
        "cancel": _cancel,
        "delete": _delete,
        "upgrade": _upgrade,
        "logout": _logout,
    }
