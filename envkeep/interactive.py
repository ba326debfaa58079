"""
Line-oriented interactive driver for a Session.

The list is drawn on stderr; each command is one line read from the
terminal. Only the final shell commands go to stdout.

Commands (list mode):
    j / k        move down / up
    x            toggle the entry under the cursor
    /TEXT        filter by TEXT (``/`` alone clears the filter)
    +            add a vault entry
    =            edit a vault entry, or promote a .env entry
    -            delete a vault entry
    i            import variables from the environment
    <enter>      apply the selection
    q            quit without changes

In import mode ``x`` selects variables freely, ``<enter>`` asks for
confirmation and saves them, ``q`` returns to the list.
"""
from collections.abc import Callable
from typing import Optional

import click

from .entries import Provenance, RuntimeEntry
from .exceptions import ReadOnlyEntry
from .selection import name_groups
from .session import Session, SessionMode


LIST_HELP = "j/k move  x toggle  /filter  + add  = edit  - delete  i import  <enter> apply  q quit"
IMPORT_HELP = "j/k move  x select  /filter  <enter> import selected  q back"


def _read_line() -> str:
    return click.prompt(
        "", prompt_suffix="> ", default="", show_default=False, err=True,
    )


def _highlight(text: str, positions: list[int]) -> str:
    if not positions:
        return text
    marked = set(positions)
    return "".join(
        click.style(char, bold=True, underline=True) if i in marked else char
        for i, char in enumerate(text)
    )


def render_row(entry: RuntimeEntry, positions: list[int], is_cursor: bool, grouped: bool) -> str:
    """Format one list row: cursor, checkbox, name and label."""
    pointer = ">" if is_cursor else " "
    if entry.selected:
        box = "(*)" if grouped else "[x]"
    else:
        box = "( )" if grouped else "[ ]"
    name_len = len(entry.name)
    name = _highlight(entry.name, [p for p in positions if p < name_len])
    extra = entry.origin if entry.provenance == Provenance.EXTERNAL_FILE else entry.label
    line = f"{pointer} {box} {name}"
    if extra:
        offset = name_len + 1
        extra = _highlight(extra, [p - offset for p in positions if p >= offset])
        line += "  " + click.style(extra, dim=True)
    return line


def render(session: Session) -> str:
    """The whole screen as a string."""
    view = session.view
    importing = session.mode == SessionMode.IMPORT
    groups = name_groups(session.entries)
    lines = []
    if importing:
        lines.append(click.style("Import from environment", bold=True))
    if view.query:
        lines.append(f"filter: {view.query}")
    if view.has_above:
        lines.append("  ...")
    for disp, index in view.visible():
        entry = session.entries[index]
        lines.append(render_row(
            entry,
            view.positions.get(index, []),
            disp == view.cursor,
            not importing and len(groups.get(entry.name, [])) > 1,
        ))
    if view.has_below:
        lines.append("  ...")
    if not len(view):
        lines.append("  (no matches)" if view.query else "  (no variables)")
    if session.error:
        lines.append(click.style(f"Error: {session.error}", fg="red"))
        lines.append("Press <enter> to continue.")
    else:
        lines.append(click.style(IMPORT_HELP if importing else LIST_HELP, dim=True))
    return "\n".join(lines)


class InteractiveDriver:
    """Feed terminal commands to a Session until it is applied or aborted."""

    def __init__(
        self,
        session: Session,
        read_line: Optional[Callable[[], str]] = None,
    ):
        self.session = session
        self.read_line = read_line or _read_line

    def ask(self, prompt: str, default: str = "") -> str:
        return click.prompt(
            prompt, default=default, show_default=bool(default), err=True,
        )

    def run(self) -> str:
        """Run the command loop and return the shell commands to print."""
        while True:
            click.echo(render(self.session), err=True)
            command = self.read_line()
            if self.session.error:
                self.session.dismiss_error()
                continue
            result = self.dispatch(command)
            if result is not None:
                return result

    def dispatch(self, command: str) -> Optional[str]:
        """Handle one command. Returns the output once the session is finished."""
        session = self.session
        stripped = command.strip()
        if command.startswith("/"):
            session.set_query(command[1:])
            return None
        if session.mode == SessionMode.IMPORT:
            return self._dispatch_import(stripped)

        if stripped == "":
            return session.apply()
        if stripped == "q":
            return session.abort()
        if stripped == "j":
            session.move_down()
        elif stripped == "k":
            session.move_up()
        elif stripped == "x":
            if session.current is not None:
                session.toggle()
        elif stripped == "i":
            session.begin_import()
        elif stripped == "+":
            self.add()
        elif stripped == "=":
            self.edit()
        elif stripped == "-":
            self.delete()
        else:
            click.echo(f"Unknown command: {stripped}", err=True)
        return None

    def _dispatch_import(self, stripped: str) -> None:
        session = self.session
        if stripped == "":
            self.confirm_import()
        elif stripped == "q":
            session.cancel_import()
        elif stripped == "j":
            session.move_down()
        elif stripped == "k":
            session.move_up()
        elif stripped == "x":
            if session.current is not None:
                session.toggle()
        else:
            click.echo(f"Unknown command: {stripped}", err=True)

    # ------------------------------------------------------------------
    # Forms
    # ------------------------------------------------------------------

    def _form(self, entry: Optional[RuntimeEntry] = None) -> tuple[str, str, str]:
        name = self.ask("Name", entry.name if entry else "")
        value = self.ask("Value", entry.value if entry else "")
        label = self.ask("Label", entry.label if entry else "")
        return name, value, label

    def add(self) -> None:
        name, value, label = self._form()
        try:
            self.session.add_entry(name, value, label)
        except ValueError as err:
            click.echo(f"Not saved: {err}", err=True)

    def edit(self) -> None:
        session = self.session
        index = session.current
        if index is None:
            return
        entry = session.entries[index]
        name, value, label = self._form(entry)
        try:
            if entry.persisted:
                session.edit_entry(index, name, value, label)
            else:
                session.promote_entry(index, name, value, label)
        except (ValueError, ReadOnlyEntry) as err:
            click.echo(f"Not saved: {err}", err=True)

    def delete(self) -> None:
        session = self.session
        index = session.current
        if index is None:
            return
        entry = session.entries[index]
        if not entry.persisted:
            click.echo("Entries from .env files cannot be deleted.", err=True)
            return
        if click.confirm(f"Delete {entry.name}?", default=False, err=True):
            session.delete_entry(index)

    def confirm_import(self) -> None:
        session = self.session
        count = sum(1 for e in session.entries if e.selected)
        if not count:
            click.echo("No variables selected.", err=True)
            return
        path = session.config.variables_file
        if click.confirm(
            f"You are about to import {count} variables to {path}. Continue?",
            default=False, err=True,
        ):
            session.confirm_import()
