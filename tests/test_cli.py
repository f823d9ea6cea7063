"""Tests for guildgate.cli."""

from unittest.mock import patch

from typer.testing import CliRunner

from guildgate.cli.commands import app
from guildgate.core.config import Config
from tests.fakes import FakeDiscord, make_member

runner = CliRunner()

_PATCH_CONFIG = "guildgate.core.config.loader.load_config"
_PATCH_FACTORY = "guildgate.core.platform.discord.create_discord_client"


def _factory(fake: FakeDiscord):
    return lambda hooks, **options: fake.factory(hooks)


def _fake_discord() -> FakeDiscord:
    fake = FakeDiscord()
    fake.add_guild("g1", "Guild One", [make_member("1", "alice", status="idle")])
    fake.add_guild("g2", "Guild Two", [make_member("2", "bob")])
    return fake


def test_cli_help():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    for name in ("run", "status", "lookup", "guilds", "members"):
        assert name in result.output


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert "guildgate v" in result.output


def test_status_output():
    cfg = Config(discord={"bot_token": "tok"}, rate_limit={"max_requests": 20})
    with patch(_PATCH_CONFIG, return_value=cfg):
        result = runner.invoke(app, ["status"])
    assert result.exit_code == 0
    assert "configured" in result.output
    assert "20 / 60000 ms" in result.output


def test_lookup_found():
    fake = _fake_discord()
    with (
        patch(_PATCH_CONFIG, return_value=Config(discord={"bot_token": "tok"})),
        patch(_PATCH_FACTORY, _factory(fake)),
    ):
        result = runner.invoke(app, ["lookup", "ALICE"])
    assert result.exit_code == 0
    assert "alice" in result.output
    assert "idle" in result.output
    assert fake.clients[0].closed


def test_lookup_not_found():
    fake = _fake_discord()
    with (
        patch(_PATCH_CONFIG, return_value=Config(discord={"bot_token": "tok"})),
        patch(_PATCH_FACTORY, _factory(fake)),
    ):
        result = runner.invoke(app, ["lookup", "ghost"])
    assert result.exit_code == 1
    assert "User not found" in result.output


def test_lookup_without_token():
    with patch(_PATCH_CONFIG, return_value=Config(discord={"bot_token": ""})):
        result = runner.invoke(app, ["lookup", "alice"])
    assert result.exit_code == 1
    assert "bot token is not configured" in result.output


def test_guilds_and_members():
    fake = _fake_discord()
    with (
        patch(_PATCH_CONFIG, return_value=Config(discord={"bot_token": "tok"})),
        patch(_PATCH_FACTORY, _factory(fake)),
    ):
        guilds = runner.invoke(app, ["guilds"])
        members = runner.invoke(app, ["members"])
    assert guilds.exit_code == 0
    assert "Guild One" in guilds.output
    assert "Guilds (2)" in guilds.output
    assert members.exit_code == 0
    assert "bob" in members.output


def test_run_uses_config_port():
    cfg = Config(server={"port": 3456, "host": "127.0.0.1"})
    with (
        patch(_PATCH_CONFIG, return_value=cfg),
        patch("uvicorn.run") as uv_run,
    ):
        result = runner.invoke(app, ["run"])
    assert result.exit_code == 0
    uv_run.assert_called_once_with("guildgate.api.app:app", host="127.0.0.1", port=3456, reload=False)
