import asyncio
from datetime import datetime, timezone

import pytest
from sqlalchemy import select

from helpers import (
    FakePlex,
    FakeTrakt,
    count,
    create_integration,
    create_user,
    database,
    make_service,
    naive,
    show_meta,
    watched,
)
from tracker.models import Episode, Integration, Season, Show, SyncLog, UserEpisode, UserShow
from tracker.services.errors import IntegrationNotConfigured, NoLibrariesFound
from tracker.services.sync_service import SyncResult, group_by_show


def _alpha_beta():
    trakt = FakeTrakt()
    trakt.add_show(show_meta(1, "Alpha", tmdb=100), {1: 5})
    plex = FakePlex(
        {
            "1": [
                watched("Alpha", 1, 1, viewed_at=1700000000, tmdb=100),
                watched("Alpha", 1, 2, tmdb=100),
                watched("Beta", 1, 1),
            ]
        }
    )
    return plex, trakt


def test_group_by_show_keeps_first_seen_order():
    items = [watched("B", 1, 1), watched("A", 1, 1), watched("B", 1, 2), watched("b", 1, 3)]

    groups = group_by_show(items)

    assert list(groups) == ["B", "A", "b"]
    assert [item.episode_number for item in groups["B"]] == [1, 2]


def test_sync_result_status_and_dict():
    result = SyncResult(shows_synced=2, episodes_synced=5, duration=12)
    assert result.status == "success"

    result.errors.append("Failed to sync X: boom")
    assert result.status == "partial"
    assert result.to_dict() == {
        "showsSynced": 2,
        "episodesSynced": 5,
        "errors": ["Failed to sync X: boom"],
        "duration": 12,
    }


def test_run_sync_imports_resolvable_shows_and_reports_the_rest():
    plex, trakt = _alpha_beta()

    async def scenario():
        async with database() as Session:
            async with Session() as db:
                user_id = await create_user(db)
                await create_integration(db, user_id)
                result = await make_service(db, plex, trakt).run_sync(user_id)

                episodes = (
                    await db.execute(
                        select(Episode.episode_number, UserEpisode.watched, UserEpisode.watched_at)
                        .join(UserEpisode, UserEpisode.episode_id == Episode.id)
                        .order_by(Episode.episode_number)
                    )
                ).all()
                memberships = (await db.execute(select(UserShow.status))).scalars().all()
                last_sync = (await db.execute(select(Integration.last_sync))).scalar_one()
                catalog = (await count(db, Show), await count(db, Season), await count(db, Episode))
                return result, episodes, memberships, last_sync, catalog

    before = datetime.now(timezone.utc).replace(tzinfo=None, microsecond=0)
    result, episodes, memberships, last_sync, catalog = asyncio.run(scenario())

    assert result.shows_synced == 1
    assert result.episodes_synced == 2
    assert result.errors == ["Failed to sync Beta: Could not find show on Trakt: Beta"]
    assert result.status == "partial"
    assert result.duration >= 0
    assert catalog == (1, 1, 5)
    assert memberships == ["ongoing"]
    assert last_sync is not None
    assert plex.tokens == ["plex-token"]

    (first_number, first_watched, first_at), (second_number, second_watched, second_at) = episodes
    assert (first_number, first_watched) == (1, True)
    assert naive(first_at) == datetime(2023, 11, 14, 22, 13, 20)
    assert (second_number, second_watched) == (2, True)
    assert naive(second_at) >= before


def test_one_failing_show_does_not_stop_the_others():
    trakt = FakeTrakt()
    trakt.add_show(show_meta(1, "Alpha", tmdb=100), {1: 1})
    trakt.add_show(show_meta(2, "Broken", tmdb=200), {1: 1})
    trakt.add_show(show_meta(3, "Gamma", tmdb=300), {1: 1})
    trakt.failing_ids.add(("tmdb", 200))
    plex = FakePlex(
        {
            "1": [
                watched("Alpha", 1, 1, tmdb=100),
                watched("Broken", 1, 1, tmdb=200),
                watched("Gamma", 1, 1, tmdb=300),
            ]
        }
    )

    async def scenario():
        async with database() as Session:
            async with Session() as db:
                user_id = await create_user(db)
                await create_integration(db, user_id)
                result = await make_service(db, plex, trakt).run_sync(user_id)
                titles = (await db.execute(select(Show.title).order_by(Show.title))).scalars().all()
                return result, titles

    result, titles = asyncio.run(scenario())

    assert result.shows_synced == 2
    assert result.episodes_synced == 2
    assert result.errors == ["Failed to sync Broken: Trakt lookup exploded for tmdb 200"]
    assert titles == ["Alpha", "Gamma"]


def test_repeated_runs_do_not_duplicate_rows():
    plex, trakt = _alpha_beta()

    async def scenario():
        async with database() as Session:
            async with Session() as db:
                user_id = await create_user(db)
                await create_integration(db, user_id)
                service = make_service(db, plex, trakt)

                await service.run_sync(user_id)
                first_at = (
                    await db.execute(select(UserEpisode.watched_at).order_by(UserEpisode.id))
                ).scalars().all()

                second = await service.run_sync(user_id)
                second_at = (
                    await db.execute(select(UserEpisode.watched_at).order_by(UserEpisode.id))
                ).scalars().all()

                totals = [
                    await count(db, model)
                    for model in (Show, Season, Episode, UserShow, UserEpisode)
                ]
                return second, first_at, second_at, totals

    second, first_at, second_at, totals = asyncio.run(scenario())

    assert totals == [1, 1, 5, 1, 2]
    assert second.shows_synced == 1
    assert second.episodes_synced == 2
    assert [naive(value) for value in first_at] == [naive(value) for value in second_at]


def test_missing_integration_aborts_the_run():
    async def scenario():
        async with database() as Session:
            async with Session() as db:
                user_id = await create_user(db)
                await make_service(db, FakePlex(), FakeTrakt()).run_sync(user_id)

    with pytest.raises(IntegrationNotConfigured, match="Plex integration not found or disabled"):
        asyncio.run(scenario())


def test_disabled_integration_aborts_the_run():
    async def scenario():
        async with database() as Session:
            async with Session() as db:
                user_id = await create_user(db)
                await create_integration(db, user_id, enabled=False)
                await make_service(db, FakePlex(), FakeTrakt()).run_sync(user_id)

    with pytest.raises(IntegrationNotConfigured):
        asyncio.run(scenario())


def test_server_without_tv_libraries_aborts_the_run():
    async def scenario():
        async with database() as Session:
            async with Session() as db:
                user_id = await create_user(db)
                await create_integration(db, user_id)
                await make_service(db, FakePlex({}), FakeTrakt()).run_sync(user_id)

    with pytest.raises(NoLibrariesFound, match="No TV libraries found on Plex server"):
        asyncio.run(scenario())


def test_failing_library_is_reported_and_others_continue():
    trakt = FakeTrakt()
    trakt.add_show(show_meta(1, "Alpha", tmdb=100), {1: 1})
    plex = FakePlex({"1": [], "2": [watched("Alpha", 1, 1, tmdb=100)]})
    plex.failing_libraries.add("1")

    async def scenario():
        async with database() as Session:
            async with Session() as db:
                user_id = await create_user(db)
                await create_integration(db, user_id)
                return await make_service(db, plex, trakt).run_sync(user_id)

    result = asyncio.run(scenario())

    assert result.errors == ["Failed to process library Library 1: library scan timed out"]
    assert result.shows_synced == 1
    assert result.episodes_synced == 1


def test_record_run_writes_one_row_per_outcome():
    async def scenario():
        async with database() as Session:
            async with Session() as db:
                user_id = await create_user(db)
                service = make_service(db, FakePlex(), FakeTrakt())

                await service.record_run(user_id, SyncResult(shows_synced=3, episodes_synced=9))
                await service.record_run(
                    user_id, SyncResult(shows_synced=1, errors=["Failed to sync X: boom"])
                )
                await service.record_run(user_id, error=NoLibrariesFound("No TV libraries"))

                history = await service.get_sync_history(user_id)
                return [
                    (log.status, log.shows_synced, log.episodes_synced, log.errors)
                    for log in history
                ]

    history = asyncio.run(scenario())

    assert history == [
        ("error", 0, 0, ["No TV libraries"]),
        ("partial", 1, 0, ["Failed to sync X: boom"]),
        ("success", 3, 9, None),
    ]


def test_sync_history_is_limited_and_per_user():
    async def scenario():
        async with database() as Session:
            async with Session() as db:
                alice = await create_user(db, "alice")
                bob = await create_user(db, "bob")
                service = make_service(db, FakePlex(), FakeTrakt())

                for shows in range(4):
                    await service.record_run(alice, SyncResult(shows_synced=shows))
                await service.record_run(bob, SyncResult(shows_synced=99))

                recent = await service.get_sync_history(alice, limit=2)
                return [log.shows_synced for log in recent], await count(db, SyncLog)

    recent, total = asyncio.run(scenario())

    assert recent == [3, 2]
    assert total == 5
