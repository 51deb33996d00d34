"""
Cron-driven scheduling of pipeline ticks.

Ticks are triggered by an APScheduler ``CronTrigger`` on the asyncio event
loop. Overlapping ticks are allowed up to ``schedule.max_instances``; beyond
that APScheduler skips the trigger and a warning is logged. A failed tick is
logged with its traceback and the scheduler keeps running.
"""

from __future__ import annotations

import asyncio
import logging

from apscheduler.events import EVENT_JOB_MAX_INSTANCES, EVENT_JOB_MISSED, JobEvent
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from .config import AppConfig, ScheduleConfig
from .core.cache import DecisionCache
from .llm.providers.base import ClassificationProvider
from .logging_utils import LOGGER_NAME
from .miniflux import MinifluxClient
from .prompts import PromptSet
from .runner import TickResult, run_tick


JOB_ID = "mark_irrelevant_entries_as_read"

logger = logging.getLogger(f"{LOGGER_NAME}.scheduler")


class FilterJob:
    """Binds the long-lived collaborators of the pipeline together.

    The decision cache is owned by the job and shared by every tick for the
    lifetime of the process.
    """

    def __init__(
        self,
        cfg: AppConfig,
        client: MinifluxClient,
        provider: ClassificationProvider,
        prompts: PromptSet,
        cache: DecisionCache | None = None,
    ):
        self.cfg = cfg
        self.client = client
        self.provider = provider
        self.prompts = prompts
        self.cache = cache if cache is not None else DecisionCache()

    async def run_once(self) -> TickResult:
        """Run one tick, propagating any failure."""
        return await run_tick(self.client, self.provider, self.prompts, self.cache, self.cfg.processing)

    async def tick(self) -> TickResult | None:
        """Scheduled entry point: run one tick and log a failure instead of raising."""
        try:
            return await self.run_once()
        except Exception:  # noqa: BLE001
            logger.exception("Tick failed; its remaining work is dropped")
            return None

    async def aclose(self) -> None:
        await self.client.aclose()
        await self.provider.aclose()


def build_scheduler(job: FilterJob, cfg: ScheduleConfig) -> AsyncIOScheduler:
    """Create a scheduler with the filter job registered on a cron trigger."""
    trigger = CronTrigger.from_crontab(cfg.cron)
    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        job.tick,
        trigger,
        id=JOB_ID,
        max_instances=cfg.max_instances,
        coalesce=False,
    )
    scheduler.add_listener(_log_skipped_run, EVENT_JOB_MISSED | EVENT_JOB_MAX_INSTANCES)
    return scheduler


async def run_forever(job: FilterJob, cfg: ScheduleConfig) -> None:
    """Start the schedule and block until the task is cancelled."""
    scheduler = build_scheduler(job, cfg)
    scheduler.start()
    logger.info("Scheduled job %s with cron %r", JOB_ID, cfg.cron)
    try:
        await asyncio.Event().wait()
    finally:
        scheduler.shutdown(wait=False)
        await job.aclose()
        logger.info("Scheduler stopped")


def _log_skipped_run(event: JobEvent) -> None:
    if event.code == EVENT_JOB_MAX_INSTANCES:
        run_times = getattr(event, "scheduled_run_times", None) or []
        logger.warning("Skipping tick at %s: too many ticks already running", ", ".join(map(str, run_times)))
    else:
        logger.warning("Missed tick scheduled for %s", getattr(event, "scheduled_run_time", None))
