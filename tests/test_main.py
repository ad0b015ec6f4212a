import io
import logging
from unittest.mock import MagicMock

import pytest
from rich.console import Console

import main
from log_parser import Chat, Login, Start, Stop
from rcon_client import PlayerList
from utils import setup_logging


@pytest.fixture
def out(monkeypatch):
    buf = io.StringIO()
    monkeypatch.setattr(main, "console", Console(file=buf, width=200, color_system=None))
    return buf


def test_chat_is_printed(out):
    main.handle_event(Chat("Bob", "[b]hi[/b]"), None)
    assert "<Bob> [b]hi[/b]" in out.getvalue()


def test_login_prints_player_list(out):
    rc = MagicMock()
    rc.list_players.return_value = PlayerList(2, 20, ["Alice", "Bob"])
    main.handle_event(Login("Alice"), rc)
    text = out.getvalue()
    assert "Alice" in text
    assert "[2/20] en ligne : Alice, Bob" in text


def test_offline_server_is_reported(out):
    rc = MagicMock()
    rc.list_players.return_value = None
    main.print_players(rc)
    assert "serveur injoignable" in out.getvalue()


def test_start_reconnects_and_stop_closes(out):
    rc = MagicMock()
    rc.list_players.return_value = PlayerList(0, 20, [])
    main.handle_event(Start(), rc)
    rc.close.assert_called_once()
    rc.connect.assert_called_once()
    rc.reset_mock()
    main.handle_event(Stop(), rc)
    rc.close.assert_called_once()
    rc.connect.assert_not_called()


def test_start_with_unreachable_rcon(out):
    rc = MagicMock()
    rc.connect.side_effect = ConnectionRefusedError("refused")
    rc.list_players.return_value = None
    main.handle_event(Start(), rc)
    assert "RCON indisponible" in out.getvalue()


def test_parse_args_overrides():
    args = main.parse_args(["--log", "x.log", "--interval", "0.5", "--no-rcon", "-v"])
    assert args.log == "x.log"
    assert args.interval == 0.5
    assert args.no_rcon and args.verbose
    assert args.config == "config.json"


def test_setup_logging_levels():
    setup_logging("debug")
    assert logging.getLogger().level == logging.DEBUG
    setup_logging("nonsense")
    assert logging.getLogger().level == logging.INFO
