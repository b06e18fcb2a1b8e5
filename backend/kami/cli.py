from __future__ import annotations

from typing import Any, Dict, List, Sequence

import typer

from . import config, gods, ledger, sessions
from .client import KamiClient, RemoteError, TimelinePoller
from .storage import get_store

app = typer.Typer(help="kAmI operator console")


def _render_table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    if not headers:
        return ""

    widths = [len(header) for header in headers]
    for row in rows:
        for idx, cell in enumerate(row):
            widths[idx] = max(widths[idx], len(cell))

    def build_border() -> str:
        segments = ["-" * (width + 2) for width in widths]
        return "+".join([""] + segments + [""])

    def build_row(cells: Sequence[str]) -> str:
        content = "|".join(f" {cells[idx].ljust(widths[idx])} " for idx in range(len(headers)))
        return f"|{content}|"

    border = build_border()
    body = [build_row(row) for row in rows]
    return "\n".join([border, build_row(headers), border, *body, border])


def _stringify(value: Any, limit: int = 48) -> str:
    if value is None:
        return "-"
    if isinstance(value, bool):
        return "yes" if value else "no"
    text = str(value).replace("\n", " ")
    if len(text) > limit:
        return text[: limit - 3] + "..."
    return text


def _echo_rows(headers: List[str], records: List[Dict[str, Any]], empty: str) -> None:
    if not records:
        typer.echo(empty)
        return
    rows = [[_stringify(record.get(column)) for column in headers] for record in records]
    typer.echo(_render_table(headers, rows))


@app.command("users")
def list_users() -> None:
    """List registered accounts and their saisen balance."""

    records = [user.to_json() for user in sessions.load_users(get_store())]
    _echo_rows(["id", "username", "email", "isAdmin", "saisenBalance", "createdAt"], records, "No users.")


@app.command("gods")
def list_gods(
    creator: str = typer.Option("", "--creator", "-c", help="Only show gods created by this user id."),
) -> None:
    """List gods, newest first."""

    store = get_store()
    records = gods.list_gods_by_creator(store, creator) if creator else gods.list_all_gods(store)
    _echo_rows(
        ["id", "name", "category", "mbtiType", "creatorUsername", "createdAt"],
        [god.to_json() for god in records],
        "No gods.",
    )


@app.command("timeline")
def timeline(god_id: str = typer.Argument(..., help="God id whose community thread to print.")) -> None:
    """Print the interleaved community timeline of a god."""

    store = get_store()
    if gods.get_god(store, god_id) is None:
        typer.echo(f"Unknown god: {god_id}", err=True)
        raise typer.Exit(code=1)
    _echo_rows(
        ["createdAt", "messageType", "username", "message", "response"],
        [message.to_json() for message in ledger.list_by_god(store, god_id)],
        "No messages yet.",
    )


@app.command("seed")
def seed() -> None:
    """Create the demo accounts when the user collection is empty."""

    created = sessions.ensure_seed_accounts(get_store())
    typer.echo(f"Seeded {created} accounts." if created else "Users already present; nothing seeded.")


@app.command("watch")
def watch(
    god_id: str = typer.Argument(..., help="God id whose community thread to follow."),
    email: str = typer.Option(..., "--email", "-e", help="Account email."),
    password: str = typer.Option(..., "--password", "-p", prompt=True, hide_input=True, help="Account password."),
    base_url: str = typer.Option(config.DEFAULT_BASE_URL, "--base-url", help="API host."),
    interval: float = typer.Option(config.POLL_INTERVAL_SECONDS, min=0.5, help="Seconds between polls."),
) -> None:
    """Follow a god's community thread over HTTP until interrupted."""

    client = KamiClient(base_url)
    try:
        user = client.login(email, password)
    except RemoteError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1)

    typer.echo(f"Watching {god_id} as {user['username']} (every {interval:g}s, Ctrl+C to stop)")

    def show(entries: List[Dict[str, Any]]) -> None:
        for entry in entries:
            typer.echo(f"[{entry.get('createdAt')}] {entry.get('username')}: {entry.get('message')}")
            if entry.get("response"):
                typer.echo(f"    -> {entry['response']}")

    poller = TimelinePoller(lambda: client.timeline(god_id), interval=interval)
    try:
        poller.run(show)
    except KeyboardInterrupt:
        poller.stop()
    finally:
        try:
            client.logout()
        except RemoteError as exc:
            typer.echo(f"Logout failed: {exc}", err=True)


if __name__ == "__main__":
    app()
