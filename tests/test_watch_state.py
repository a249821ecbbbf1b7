import asyncio
from datetime import datetime, timezone

from sqlalchemy import select

from helpers import FakePosters, FakeTrakt, create_user, database, naive, show_meta, watched
from tracker.models import UserEpisode
from tracker.services.catalog_populator import CatalogPopulator
from tracker.services.watch_state import WatchStateMerger, watched_at_from_epoch


def test_watched_at_from_epoch():
    assert watched_at_from_epoch(1700000000) == datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)
    assert watched_at_from_epoch(None) is None
    assert watched_at_from_epoch(0) is None


async def _catalog(db, episodes=3):
    trakt = FakeTrakt()
    meta = show_meta(1, "Alpha")
    trakt.add_show(meta, {1: episodes})
    populator = CatalogPopulator(db, trakt, FakePosters())
    show_id = await populator.ensure_show(meta)
    await populator.populate(show_id, 1)
    return show_id


async def _watch_rows(db):
    result = await db.execute(
        select(UserEpisode.episode_id, UserEpisode.watched, UserEpisode.watched_at).order_by(
            UserEpisode.episode_id
        )
    )
    return [tuple(row) for row in result.all()]


def test_merge_uses_reported_time_or_now():
    async def scenario():
        async with database() as Session:
            async with Session() as db:
                user_id = await create_user(db)
                show_id = await _catalog(db)
                merged = await WatchStateMerger(db).merge(
                    user_id,
                    show_id,
                    1,
                    [watched("Alpha", 1, 1, viewed_at=1700000000), watched("Alpha", 1, 2)],
                )
                return merged, await _watch_rows(db)

    before = datetime.now(timezone.utc).replace(tzinfo=None)
    merged, rows = asyncio.run(scenario())

    assert merged == 2
    assert all(row[1] for row in rows)
    assert naive(rows[0][2]) == datetime(2023, 11, 14, 22, 13, 20)
    assert naive(rows[1][2]) >= before.replace(microsecond=0)


def test_merge_without_time_keeps_existing_watched_at():
    async def scenario():
        async with database() as Session:
            async with Session() as db:
                user_id = await create_user(db)
                show_id = await _catalog(db)
                merger = WatchStateMerger(db)

                await merger.merge(user_id, show_id, 1, [watched("Alpha", 1, 1, viewed_at=1600000000)])
                await merger.merge(user_id, show_id, 1, [watched("Alpha", 1, 1)])
                return await _watch_rows(db)

    rows = asyncio.run(scenario())

    assert len(rows) == 1
    assert naive(rows[0][2]) == datetime(2020, 9, 13, 12, 26, 40)


def test_merge_never_unwatches():
    async def scenario():
        async with database() as Session:
            async with Session() as db:
                user_id = await create_user(db)
                show_id = await _catalog(db)
                merger = WatchStateMerger(db)

                await merger.merge(user_id, show_id, 1, [watched("Alpha", 1, 1)])
                await merger.merge(user_id, show_id, 1, [watched("Alpha", 1, 2)])
                return await _watch_rows(db)

    rows = asyncio.run(scenario())

    assert [row[1] for row in rows] == [True, True]


def test_merge_skips_episodes_missing_from_catalog():
    async def scenario():
        async with database() as Session:
            async with Session() as db:
                user_id = await create_user(db)
                show_id = await _catalog(db, episodes=1)
                merged = await WatchStateMerger(db).merge(
                    user_id,
                    show_id,
                    1,
                    [watched("Alpha", 1, 1), watched("Alpha", 1, 9), watched("Alpha", 0, 1)],
                )
                return merged, await _watch_rows(db)

    merged, rows = asyncio.run(scenario())

    assert merged == 1
    assert len(rows) == 1


def test_mark_watched_updates_unwatched_record():
    async def scenario():
        async with database() as Session:
            async with Session() as db:
                user_id = await create_user(db)
                show_id = await _catalog(db, episodes=1)
                merger = WatchStateMerger(db)
                episode_id = await merger._find_episode_id(show_id, 1, 1)
                db.add(UserEpisode(user_id=user_id, episode_id=episode_id, watched=False))
                await db.commit()

                await merger.mark_watched(user_id, episode_id, None)
                return await _watch_rows(db)

    rows = asyncio.run(scenario())

    assert len(rows) == 1
    assert rows[0][1] is True
    assert rows[0][2] is not None
