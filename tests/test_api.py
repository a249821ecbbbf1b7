import asyncio

import httpx
from sqlalchemy import select

from helpers import (
    FakePlex,
    FakeTrakt,
    create_integration,
    create_user,
    database,
    make_service,
    show_meta,
    watched,
)
from tracker.api import integrations
from tracker.api.auth import get_current_user
from tracker.database import get_db
from tracker.main import app
from tracker.models import SyncLog, User


async def _call(Session, user, requests):
    """Run requests against the app with the test database and user"""

    async def override_db():
        async with Session() as session:
            yield session

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_current_user] = lambda: user
    try:
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            return [await client.request(method, url) for method, url in requests]
    finally:
        app.dependency_overrides.clear()


def test_manual_sync_returns_result_and_records_history(monkeypatch):
    trakt = FakeTrakt()
    trakt.add_show(show_meta(1, "Alpha", tmdb=100), {1: 2})
    plex = FakePlex({"1": [watched("Alpha", 1, 1, tmdb=100), watched("Beta", 1, 1)]})
    monkeypatch.setattr(
        integrations, "create_sync_service", lambda db: make_service(db, plex, trakt)
    )

    async def scenario():
        async with database() as Session:
            async with Session() as db:
                user_id = await create_user(db)
                await create_integration(db, user_id)
                user = await db.get(User, user_id)

            return await _call(
                Session,
                user,
                [
                    ("POST", "/api/integrations/plex/sync"),
                    ("GET", "/api/integrations/plex/sync"),
                ],
            )

    sync, history = asyncio.run(scenario())

    assert sync.status_code == 200
    body = sync.json()
    assert body["success"] is True
    assert body["showsSynced"] == 1
    assert body["episodesSynced"] == 1
    assert body["errors"] == ["Failed to sync Beta: Could not find show on Trakt: Beta"]

    logs = history.json()["logs"]
    assert len(logs) == 1
    assert logs[0]["status"] == "partial"


def test_manual_sync_without_integration_answers_500_and_logs_error(monkeypatch):
    monkeypatch.setattr(
        integrations,
        "create_sync_service",
        lambda db: make_service(db, FakePlex(), FakeTrakt()),
    )

    async def scenario():
        async with database() as Session:
            async with Session() as db:
                user = await db.get(User, await create_user(db))

            (response,) = await _call(Session, user, [("POST", "/api/integrations/plex/sync")])

            async with Session() as db:
                log = (await db.execute(select(SyncLog))).scalar_one()
            return response, log.status, log.errors

    response, status, errors = asyncio.run(scenario())

    assert response.status_code == 500
    assert response.json() == {
        "error": "Failed to sync Plex",
        "message": "Plex integration not found or disabled",
    }
    assert status == "error"
    assert errors == ["Plex integration not found or disabled"]


def test_status_reports_connection_without_token():
    async def scenario():
        async with database() as Session:
            async with Session() as db:
                user_id = await create_user(db)
                await create_integration(db, user_id)
                user = await db.get(User, user_id)

            (response,) = await _call(Session, user, [("GET", "/api/integrations/plex")])
            return response

    response = asyncio.run(scenario())

    body = response.json()
    assert body["connected"] is True
    assert body["integration"]["server_url"] == "http://plex.local:32400"
    assert "access_token" not in body["integration"]
