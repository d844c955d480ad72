"""Terminal rendering for status and editgroup listings."""

from __future__ import annotations

from typing import Iterable, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from fatcat_cli.application.workflows.edit_workflow import ClientStatus
from fatcat_cli.domain.entities import Editgroup

console = Console()
err_console = Console(stderr=True)


def _label(name: str) -> str:
    return f"{name:>16}: "


def _badge(text: str, style: str) -> str:
    # square brackets are rich markup; the badge text itself must be escaped
    return f" [{style}]{escape('[' + text + ']')}[/{style}]"


def print_status(status: ClientStatus, out: Optional[Console] = None) -> None:
    out = out or console
    host_line = _label("API host") + f"[bold]{escape(status.api_host)}[/bold]"
    if status.last_changelog is not None:
        out.print(host_line + _badge("successfully connected", "bold green"))
        out.print(_label("Last changelog") + f"[bold]{status.last_changelog}[/bold]")
    else:
        out.print(host_line + _badge("Failed to connect", "bold red"))

    if status.has_api_token:
        out.print(_label("API auth token") + _badge("configured", "bold green").lstrip())
    else:
        out.print(_label("API auth token") + _badge("not configured", "bold red").lstrip())

    editor = status.account
    if editor is None:
        return
    line = _label("Account") + f"[bold]{escape(editor.username or '-')}[/bold]"
    if editor.is_bot:
        line += _badge("bot", "bold blue")
    if editor.is_admin:
        line += _badge("admin", "bold magenta")
    line += _badge("active", "bold green") if editor.is_active else _badge("disabled", "bold red")
    out.print(line)
    out.print(_label("") + escape(f"editor_{editor.editor_id}"))


def print_editgroups(
    editgroups: Iterable[Editgroup], *, as_json: bool = False, out: Optional[Console] = None
) -> None:
    """One JSON object per line, or a table."""
    if as_json:
        for eg in editgroups:
            print(eg.to_json())
        return

    table = Table(box=None, header_style="bold")
    for column in ("editgroup_id", "changelog_index", "created", "submitted", "description"):
        table.add_column(column)
    for eg in editgroups:
        table.add_row(
            escape(eg.editgroup_id or "-"),
            "-" if eg.changelog_index is None else str(eg.changelog_index),
            eg.created or "-",
            eg.submitted or "-",
            escape(eg.description or "-"),
        )
    (out or console).print(table)


def print_error(message: str) -> None:
    err_console.print(f"[bold red]Error:[/bold red] {escape(message)}", highlight=False, soft_wrap=True)
