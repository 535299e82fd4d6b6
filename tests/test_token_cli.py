from __future__ import annotations

from datetime import datetime, timezone

import pytest

import token_cli
from common import config
from common.token_engine import Role


@pytest.fixture(autouse=True)
def default_secrets(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in config.env_var_names():
        monkeypatch.delenv(name, raising=False)


class FakeResponse:
    def __init__(self, payload: dict):
        self.payload = payload

    def raise_for_status(self) -> None:
        return None

    def json(self) -> dict:
        return self.payload


def answers(*values):
    it = iter(values)
    return lambda _prompt="": next(it)


def test_lists_every_role(capsys: pytest.CaptureFixture[str]) -> None:
    assert token_cli.main([]) == 0
    out = capsys.readouterr().out
    for role in Role:
        assert f"{role.value.upper()}: " in out


def test_invalid_role_is_usage_error(capsys: pytest.CaptureFixture[str]) -> None:
    assert token_cli.main(["admin"]) == 1
    assert "Invalid role: admin" in capsys.readouterr().err


def test_single_role_cross_checks_server(monkeypatch, capsys) -> None:
    seen = {}

    def fake_get(url, params, timeout):
        seen.update(url=url, token=params["token"])
        return FakeResponse({"debug": {"currentDate": "20250101",
                                       "expectedTokens": {"pm": params["token"]}},
                             "result": {"valid": True, "role": "pm"}})

    monkeypatch.setattr(token_cli.requests, "get", fake_get)
    assert token_cli.main(["pm", "--url", "http://dev:5000/api/debug/token"]) == 0
    out = capsys.readouterr().out
    assert seen["url"] == "http://dev:5000/api/debug/token"
    assert seen["token"] in out
    assert "[OK] pm" in out
    assert "Token accepted by the server." in out


def test_server_down_still_exits_zero(monkeypatch, capsys) -> None:
    def down(*args, **kwargs):
        raise token_cli.requests.ConnectionError("refused")

    monkeypatch.setattr(token_cli.requests, "get", down)
    assert token_cli.main(["developer"]) == 0
    assert "Server check failed" in capsys.readouterr().out


def test_verify_checks_every_role(monkeypatch) -> None:
    checked = []
    monkeypatch.setattr(token_cli, "verify_with_server", lambda token, url: checked.append(token) or True)
    assert token_cli.main(["--verify"]) == 0
    assert len(checked) == len(Role)


def test_interactive_prints_token_for_owner(capsys) -> None:
    now = datetime(2025, 1, 1, 9, 0, tzinfo=timezone.utc)
    code = token_cli.interactive_main(prompt=answers("20020317", "01092034239", ""), now=now)
    assert code == 0
    out = capsys.readouterr().out
    assert "Role: Developer (developer)" in out
    assert "f9f7c244-f193-fcee" in out


@pytest.mark.parametrize("birth", ["2002031", "abcdefgh", "2002-03-17"])
def test_interactive_rejects_bad_birth_date(birth, capsys) -> None:
    assert token_cli.interactive_main(prompt=answers(birth, "")) == 1
    out = capsys.readouterr().out
    assert "birth date must be 8 digits" in out
    assert "Phone" not in out


@pytest.mark.parametrize("phone", ["010123", "010-9203-4239", "phone-number"])
def test_interactive_rejects_bad_phone(phone, capsys) -> None:
    assert token_cli.interactive_main(prompt=answers("20020317", phone, "")) == 1
    assert "phone number must be 10-11 digits" in capsys.readouterr().out


def test_interactive_unknown_member(capsys) -> None:
    assert token_cli.interactive_main(prompt=answers("20020317", "01000000000", "")) == 0
    out = capsys.readouterr().out
    assert "Not a registered team member" in out
    assert "Role:" not in out
