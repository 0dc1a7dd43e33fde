"""Tests for the classroom CLI against the stub API."""

import asyncio
import functools

import httpx
import pytest

from fluentx.config import Settings
from fluentx.http import ApiClient
from tools import classroom_cli


@pytest.fixture
def cli_env(monkeypatch, tmp_path, stub_app):
    settings = Settings(api_url="http://testserver", state_file=tmp_path / "state.json")
    monkeypatch.setattr(classroom_cli, "get_settings", lambda: settings)
    monkeypatch.setattr(
        classroom_cli,
        "ApiClient",
        functools.partial(ApiClient, transport=httpx.ASGITransport(app=stub_app)),
    )
    return settings


def _run(argv) -> int:
    return asyncio.run(classroom_cli.run(classroom_cli.build_parser().parse_args(argv)))


class TestCli:
    def test_login_then_book(self, cli_env, stub_app, capsys):
        assert _run(["login", "minji@example.com", "secret123"]) == 0
        assert "logged in to the student portal as Minji Kim" in capsys.readouterr().out

        assert _run(["slots", "tutor-1"]) == 0
        out = capsys.readouterr().out
        assert "19:00 KST  (s1)" in out

        assert _run(["book", "tutor-1", "s1"]) == 0
        assert "booked" in capsys.readouterr().out
        assert stub_app.state.booked == ["s1"]

    def test_api_error_exits_non_zero(self, cli_env, capsys):
        assert _run(["login", "minji@example.com", "wrong"]) == 1
        assert "Invalid email or password" in capsys.readouterr().err

    def test_unknown_slot(self, cli_env, capsys):
        assert _run(["book", "tutor-1", "nope"]) == 1
        assert "not available" in capsys.readouterr().err

    def test_search(self, cli_env, capsys):
        assert _run(["search", "--query", "business", "--available"]) == 0
        assert "Maria Santos" in capsys.readouterr().out

    def test_tutor_login_and_week(self, cli_env, stub_app, capsys):
        assert _run(["--role", "tutor", "login", "maria@example.com", "secret123"]) == 0
        assert "logged in to the tutor portal as Maria Santos" in capsys.readouterr().out

        assert _run(["--role", "tutor", "week", "--offset", "1"]) == 0
        out = capsys.readouterr().out
        assert "week 2025-01-06 to 2025-01-12" in out
        assert "Minji Kim (b-1)" in out
        paths = [path for _, path, _ in stub_app.state.calls]
        assert paths == ["/tutor/login", "/schedule/week"]

    def test_week_needs_tutor_role(self, cli_env, stub_app, capsys):
        assert _run(["week"]) == 2
        assert "needs --role tutor" in capsys.readouterr().err
        assert stub_app.state.calls == []

    def test_parser_requires_command(self):
        with pytest.raises(SystemExit):
            classroom_cli.build_parser().parse_args([])
