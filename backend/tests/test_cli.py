from __future__ import annotations

from typer.testing import CliRunner

from kami import cli, gods, ledger, sessions
from kami.cli import app
from kami.client import RemoteError
from kami.models import GodCreate, Message, MessageType

from conftest import god_payload

runner = CliRunner()


def test_users_lists_seeded_accounts(store) -> None:
    result = runner.invoke(app, ["users"])

    assert result.exit_code == 0
    assert "admin@kami.app" in result.output
    assert "user1" in result.output
    assert "10000" in result.output


def test_gods_filters_by_creator(store) -> None:
    admin = sessions.find_user(store, "1")
    user = sessions.find_user(store, "2")
    gods.create_god(store, admin, GodCreate.model_validate(god_payload(name="Inari")))
    gods.create_god(store, user, GodCreate.model_validate(god_payload(name="Raijin")))

    everything = runner.invoke(app, ["gods"])
    mine = runner.invoke(app, ["gods", "--creator", "2"])

    assert "Inari" in everything.output and "Raijin" in everything.output
    assert "Raijin" in mine.output
    assert "Inari" not in mine.output


def test_timeline_prints_messages(store) -> None:
    user = sessions.find_user(store, "2")
    god, _ = gods.create_god(store, user, GodCreate.model_validate(god_payload()))
    ledger.append_message(
        store,
        Message(
            id="",
            user_id=user.id,
            username=user.username,
            god_id=god.id,
            message="hello shrine",
            message_type=MessageType.believer,
            is_god_message=False,
        ),
    )

    result = runner.invoke(app, ["timeline", god.id])

    assert result.exit_code == 0
    assert "hello shrine" in result.output
    assert "believer" in result.output


def test_timeline_unknown_god(store) -> None:
    result = runner.invoke(app, ["timeline", "god_missing"])
    assert result.exit_code == 1


def test_seed_is_idempotent(store) -> None:
    result = runner.invoke(app, ["seed"])
    assert result.exit_code == 0
    assert "nothing seeded" in result.output
    assert len(sessions.load_users(store)) == 2


class FakeClient:
    """Stands in for KamiClient; a second timeline read ends the watch like Ctrl+C."""

    instances: list = []

    def __init__(self, base_url: str) -> None:
        self.base_url = base_url
        self.reads = 0
        self.logged_out = False
        FakeClient.instances.append(self)

    def login(self, email: str, password: str) -> dict:
        if password != "user123":
            raise RemoteError("401: Invalid email or password", 401)
        return {"id": "2", "username": "user1"}

    def timeline(self, god_id: str) -> list:
        self.reads += 1
        if self.reads > 1:
            raise KeyboardInterrupt
        return [
            {"id": "m1", "createdAt": "t1", "username": "user1", "message": "hello", "response": "Be at peace."},
            {"id": "m2", "createdAt": "t2", "username": "admin", "message": "welcome", "response": None},
        ]

    def logout(self) -> None:
        self.logged_out = True


def test_watch_prints_new_entries_and_logs_out(monkeypatch) -> None:
    FakeClient.instances = []
    monkeypatch.setattr(cli, "KamiClient", FakeClient)

    result = runner.invoke(
        app,
        ["watch", "god_1", "--email", "user1@kami.app", "--password", "user123", "--interval", "0.5",
         "--base-url", "http://kami.test"],
    )

    assert result.exit_code == 0
    assert "Watching god_1 as user1" in result.output
    assert "user1: hello" in result.output
    assert "-> Be at peace." in result.output
    assert "admin: welcome" in result.output
    (client,) = FakeClient.instances
    assert client.base_url == "http://kami.test"
    assert client.reads == 2
    assert client.logged_out


def test_watch_stops_on_failed_login(monkeypatch) -> None:
    FakeClient.instances = []
    monkeypatch.setattr(cli, "KamiClient", FakeClient)

    result = runner.invoke(app, ["watch", "god_1", "--email", "user1@kami.app", "--password", "wrong"])

    assert result.exit_code == 1
    assert FakeClient.instances[0].reads == 0
