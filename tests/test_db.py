"""
Engine construction per backend.
"""
from __future__ import annotations

import pytest

import shared.db
from shared.config import Settings


@pytest.fixture
def captured(monkeypatch: pytest.MonkeyPatch):
    calls = {}

    def fake_create_async_engine(url, **kwargs):
        calls["url"] = url
        calls.update(kwargs)
        return object()

    monkeypatch.setattr(shared.db, "create_async_engine", fake_create_async_engine)
    return calls


def test_postgres_statements_are_bounded(captured):
    shared.db.build_engine(
        Settings(database_url="postgresql+asyncpg://u:p@db/school", transaction_timeout_seconds=7.5)
    )

    assert captured["connect_args"] == {"command_timeout": 7.5}
    assert captured["pool_pre_ping"] is True


def test_sqlite_waits_on_locks_for_the_transaction_timeout(captured):
    shared.db.build_engine(Settings(database_url="sqlite+aiosqlite:///:memory:", transaction_timeout_seconds=3.0))

    assert captured["connect_args"] == {"timeout": 3.0}
