# Copyright (C) 2024 StreamCat Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Pytest fixtures. Each test gets its own SQLite database file (aiosqlite)."""

from datetime import datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient

from streamcat_server.config import Settings
from streamcat_server.database import Database
from streamcat_server.errors import NotificationError
from streamcat_server.main import create_app
from streamcat_server.services.accounts import AccountService, CredentialStore
from streamcat_server.services.codes import CodeLedger
from streamcat_server.services.catalog import TmdbClient


class FakeClock:
    """Controllable UTC clock for expiry tests."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class RecordingSender:
    """Notification sender double that keeps every message in memory."""

    def __init__(self, fail: bool = False) -> None:
        self.sent: list[tuple[str, str]] = []
        self.fail = fail

    async def send(self, address: str, code: str) -> str:
        if self.fail:
            raise NotificationError("smtp down")
        self.sent.append((address, code))
        return f"msg-{len(self.sent)}"

    def last_code(self, address: str) -> str:
        return [c for a, c in self.sent if a == address][-1]


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'streamcat.db'}",
        rate_limit_enabled=False,
        smtp_host=None,
        smtp_user=None,
        tmdb_api_key=None,
    )


@pytest.fixture
async def database(settings):
    db = Database(settings.database_url)
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
async def session(database):
    async with database.session() as s:
        yield s


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sender() -> RecordingSender:
    return RecordingSender()


@pytest.fixture
def ledger(session, clock) -> CodeLedger:
    return CodeLedger(session, clock=clock)


@pytest.fixture
def store(session) -> CredentialStore:
    return CredentialStore(session)


@pytest.fixture
def service(store, ledger, sender) -> AccountService:
    return AccountService(store, ledger, sender)


@pytest.fixture
def catalog_client() -> TmdbClient:
    return TmdbClient(api_key=None)


@pytest.fixture
def app(settings, database, sender, clock, catalog_client):
    return create_app(
        settings=settings,
        database=database,
        sender=sender,
        catalog_client=catalog_client,
        clock=clock,
    )


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
