"""Background scheduler for the daily Plex sync"""

import asyncio
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import Settings, settings as app_settings
from ..database import AsyncSessionLocal
from ..models.integration import PLEX_PROVIDER, Integration
from .log_service import log_service
from .sync_service import STATUS_ERROR, SyncService, create_sync_service

DAILY_JOB_ID = "plex_auto_sync"
STARTUP_JOB_ID = "plex_startup_sync"


class SchedulerState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    RUNNING = "running"
    DISABLED = "disabled"


class SchedulerService:
    """
    Runs the Plex sync for every auto-sync user once a day

    Users are synced one after another with a pause in between; one user's
    failure never stops the batch.
    """

    def __init__(
        self,
        session_factory=AsyncSessionLocal,
        service_factory: Callable[[AsyncSession], SyncService] = create_sync_service,
        user_delay: Optional[float] = None,
    ):
        self.scheduler = AsyncIOScheduler()
        self.session_factory = session_factory
        self.service_factory = service_factory
        self.user_delay = user_delay
        self._state = SchedulerState.UNINITIALIZED
        self._batch_running = False

    @property
    def state(self) -> SchedulerState:
        if self._state == SchedulerState.INITIALIZED and self._batch_running:
            return SchedulerState.RUNNING
        return self._state

    async def initialize(self, config: Settings = None) -> SchedulerState:
        """Register the daily trigger; only the first call has any effect"""
        if self._state != SchedulerState.UNINITIALIZED:
            log_service.info("Scheduler already initialized, skipping")
            return self.state

        config = config or app_settings
        if self.user_delay is None:
            self.user_delay = config.SYNC_USER_DELAY_SECONDS

        if not config.ENABLE_SCHEDULER:
            log_service.info("Scheduler disabled (set ENABLE_SCHEDULER=true to enable)")
            self._state = SchedulerState.DISABLED
            return self._state

        log_service.info("Starting background scheduler")
        self.scheduler.start()
        self.scheduler.add_job(
            self.run_scheduled_sync,
            trigger=CronTrigger(hour=config.SYNC_HOUR, minute=config.SYNC_MINUTE),
            id=DAILY_JOB_ID,
            name="Daily Plex sync",
            replace_existing=True,
            max_instances=1,
        )

        if config.SYNC_ON_STARTUP:
            run_date = datetime.now(timezone.utc) + timedelta(
                seconds=config.STARTUP_SYNC_DELAY_SECONDS
            )
            self.scheduler.add_job(
                self.run_scheduled_sync,
                trigger=DateTrigger(run_date=run_date),
                id=STARTUP_JOB_ID,
                name="Startup Plex sync",
                replace_existing=True,
            )
            log_service.info(
                f"Startup sync scheduled in {config.STARTUP_SYNC_DELAY_SECONDS}s"
            )

        self._state = SchedulerState.INITIALIZED
        log_service.info(
            f"Scheduler initialized. Daily sync at "
            f"{config.SYNC_HOUR:02d}:{config.SYNC_MINUTE:02d}"
        )
        return self._state

    async def stop(self):
        """Stop the scheduler"""
        if self._state != SchedulerState.INITIALIZED:
            return

        log_service.info("Stopping background scheduler")
        try:
            # Shutdown scheduler in executor to avoid blocking
            loop = asyncio.get_event_loop()
            await asyncio.wait_for(
                loop.run_in_executor(None, self.scheduler.shutdown, False), timeout=2.0
            )
        except asyncio.TimeoutError:
            log_service.error("Scheduler shutdown timed out, forcing stop")
        except Exception as e:
            log_service.error(f"Error stopping scheduler: {e}")
        finally:
            self._state = SchedulerState.UNINITIALIZED
            log_service.info("Background scheduler stopped")

    async def _sync_user(self, user_id: int) -> str:
        """Sync and record one user; returns the run status"""
        async with self.session_factory() as db:
            service = self.service_factory(db)
            try:
                try:
                    result = await service.run_sync(user_id)
                except Exception as e:
                    await db.rollback()
                    log_service.error(f"Failed to sync Plex for user {user_id}: {e}")
                    try:
                        await service.record_run(user_id, error=e)
                    except Exception as log_error:
                        await db.rollback()
                        log_service.error(
                            f"Failed to create error log for user {user_id}: {log_error}"
                        )
                    return STATUS_ERROR

                try:
                    await service.record_run(user_id, result)
                except Exception as e:
                    await db.rollback()
                    log_service.error(f"Failed to record sync for user {user_id}: {e}")

                log_service.info(
                    f"Sync completed for user {user_id}: {result.shows_synced} shows, "
                    f"{result.episodes_synced} episodes, {len(result.errors)} errors"
                )
                return result.status
            finally:
                await service.close()

    async def run_scheduled_sync(self) -> Dict[str, int]:
        """Sync every enabled auto-sync integration, one user at a time"""
        summary = {"users": 0, "success": 0, "partial": 0, "error": 0}
        if self._batch_running:
            log_service.info("Scheduled sync already running, skipping")
            return summary

        self._batch_running = True
        log_service.info("Running scheduled Plex sync")
        try:
            async with self.session_factory() as db:
                result = await db.execute(
                    select(Integration.user_id)
                    .where(
                        Integration.enabled.is_(True),
                        Integration.auto_sync.is_(True),
                        Integration.provider == PLEX_PROVIDER,
                    )
                    .order_by(Integration.id)
                )
                targets = result.scalars().all()

            log_service.info(f"Found {len(targets)} users with autoSync enabled")
            for index, user_id in enumerate(targets):
                if index:
                    await asyncio.sleep(self.user_delay or 0)
                summary["users"] += 1
                try:
                    status = await self._sync_user(user_id)
                except Exception as e:
                    log_service.error(f"Scheduled sync crashed for user {user_id}: {e}")
                    status = STATUS_ERROR
                summary[status] += 1

            log_service.info(f"Scheduled sync completed: {summary}")
        except Exception as e:
            log_service.error(f"Scheduled sync failed: {e}")
        finally:
            self._batch_running = False
        return summary

    async def trigger_manual_sync(self) -> Dict[str, int]:
        """Run the scheduled batch now"""
        log_service.info("Manually triggering scheduled sync")
        return await self.run_scheduled_sync()


# Global scheduler instance
scheduler_service = SchedulerService()
