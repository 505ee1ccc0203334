"""
Pytest configuration for the identity service tests.

Every test gets its own SQLite database file so registrations never leak
between tests. AnyIO runs the async tests on the asyncio backend.
"""
from __future__ import annotations

from typing import Any, Dict

import httpx
import pytest
from httpx import ASGITransport

import services.identity_management.models  # noqa: F401  (register mappers)
from services.identity_management.controllers.identity_registry import IdentityRegistry
from services.identity_management.schemas.users import (
    AdminRegistration,
    ParentRegistration,
    StudentRegistration,
    TeacherRegistration,
)
from shared.config import Settings
from shared.db import Base, build_engine, build_session_factory


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        environment="test",
        secret_key="test-secret-key",
        bcrypt_rounds=4,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'identity.db'}",
        transaction_timeout_seconds=5.0,
        allocation_retry_backoff_seconds=0.0,
    )


@pytest.fixture
async def session_factory(settings):
    engine = build_engine(settings)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield build_session_factory(engine)
    await engine.dispose()


@pytest.fixture
def registry(settings, session_factory) -> IdentityRegistry:
    return IdentityRegistry(settings, session_factory)


@pytest.fixture
async def client(registry):
    import main

    main.app.state.registry = registry
    async with httpx.AsyncClient(transport=ASGITransport(app=main.app), base_url="http://test") as c:
        yield c


def _student_payload(**overrides: Any) -> Dict[str, Any]:
    payload = {
        "name": "Asha",
        "email": "Asha@x.com",
        "password": "secret1",
        "role": "STUDENT",
        "classId": "10",
        "section": "A",
        "dateOfBirth": "2008-01-01",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def make_student():
    def _make(**overrides: Any) -> StudentRegistration:
        return StudentRegistration.model_validate(_student_payload(**overrides))

    return _make


@pytest.fixture
def make_teacher():
    def _make(**overrides: Any) -> TeacherRegistration:
        payload = {
            "name": "Ravi Kumar",
            "email": "ravi@school.org",
            "password": "teach123",
            "role": "TEACHER",
            "qualification": "M.Sc Physics",
            "department": "Science",
        }
        payload.update(overrides)
        return TeacherRegistration.model_validate(payload)

    return _make


@pytest.fixture
def make_parent():
    def _make(**overrides: Any) -> ParentRegistration:
        payload = {
            "name": "Meera",
            "email": "meera@school.org",
            "password": "parent1",
            "role": "PARENT",
        }
        payload.update(overrides)
        return ParentRegistration.model_validate(payload)

    return _make


@pytest.fixture
def make_admin():
    def _make(**overrides: Any) -> AdminRegistration:
        payload = {
            "name": "Principal",
            "email": "office@school.org",
            "password": "admin123",
            "role": "ADMIN",
        }
        payload.update(overrides)
        return AdminRegistration.model_validate(payload)

    return _make


@pytest.fixture
def student_payload():
    return _student_payload
