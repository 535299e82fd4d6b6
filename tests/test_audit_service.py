from __future__ import annotations

from pathlib import Path

import pytest
from sqlalchemy import create_engine

import audit_service
from common.token_engine import Role, TokenEngine


@pytest.fixture
def db_url(tmp_path: Path) -> str:
    return f"sqlite:///{tmp_path / 'audit.db'}"


@pytest.fixture
def client(db_url: str, engine: TokenEngine):
    return audit_service.create_app(db_url=db_url, token_engine=engine).test_client()


def record(client, **event):
    return client.post("/audit", json={"event": "admin_activity", **event})


def test_record_and_list(client, engine) -> None:
    assert record(client, action="create", role="pm", path="/api/control/magazines").status_code == 200
    assert record(client, action="delete", role="developer", path="/api/control/magazines/3").status_code == 200

    token = engine.today_token(Role.DESIGNER)
    rows = client.get(f"/audit?token={token}").get_json()
    assert [r["event"]["action"] for r in rows] == ["delete", "create"]
    assert rows[0]["prev_hash"] == rows[1]["cur_hash"]
    assert rows[1]["prev_hash"] is None


def test_listing_requires_token(client) -> None:
    assert client.get("/audit").status_code == 401
    assert client.get("/audit/verify?token=bad").status_code == 401


def test_limit_and_days(client, engine) -> None:
    for i in range(3):
        record(client, action="update", role="pm", path=f"/api/control/magazines/{i}")
    record(client, action="update", role="pm", path="/old", ts=1)

    token = engine.today_token(Role.PM)
    assert len(client.get(f"/audit?token={token}").get_json()) == 3
    assert len(client.get(f"/audit?token={token}&limit=2").get_json()) == 2


def test_rejects_non_object(client) -> None:
    assert client.post("/audit", json=[1, 2]).status_code == 400


def test_verify_detects_tampering(client, engine, db_url: str) -> None:
    record(client, action="create", role="pm", path="/a")
    record(client, action="update", role="pm", path="/a")
    token = engine.today_token(Role.DEVELOPER)
    assert client.get(f"/audit/verify?token={token}").get_json() == {"valid": True, "entries": 2}

    with create_engine(db_url, future=True).begin() as con:
        con.exec_driver_sql(
            "UPDATE admin_activity SET event = :ev WHERE id = 1",
            {"ev": '{"action": "delete", "event": "admin_activity", "path": "/a", "role": "pm", "ts": 1}'},
        )
    assert client.get(f"/audit/verify?token={token}").get_json()["valid"] is False


def test_null_ts_is_stamped(client, engine) -> None:
    assert record(client, action="create", role="pm", ts=None).status_code == 200
    rows = client.get(f"/audit?token={engine.today_token(Role.PM)}").get_json()
    assert isinstance(rows[0]["ts"], int)


def test_non_integer_ts_is_rejected(client) -> None:
    assert record(client, action="create", role="pm", ts="yesterday").status_code == 400


def test_negative_limit_and_days_are_clamped(client, engine) -> None:
    for i in range(3):
        record(client, action="update", role="pm", path=f"/a/{i}")
    token = engine.today_token(Role.PM)
    assert len(client.get(f"/audit?token={token}&limit=-1").get_json()) == 1
    assert len(client.get(f"/audit?token={token}&days=-5").get_json()) == 3
