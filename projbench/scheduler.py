"""Background jobs — periodic auto-benchmarking and cleanup on APScheduler."""

from __future__ import annotations

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from projbench.config import Settings
from projbench.services.orchestrator import BenchmarkOrchestrator

logger = structlog.get_logger()

AUTO_BENCHMARK_JOB_ID = "projbench-auto-benchmark"
CLEANUP_JOB_ID = "projbench-cleanup"


class BackgroundJobs:
    """Owns the scheduler; started and stopped by the application lifespan."""

    def __init__(self, orchestrator: BenchmarkOrchestrator, settings: Settings) -> None:
        self.orchestrator = orchestrator
        self.settings = settings
        self.scheduler = AsyncIOScheduler(timezone="UTC")

    @property
    def running(self) -> bool:
        return self.scheduler.running

    def job_ids(self) -> list[str]:
        return [job.id for job in self.scheduler.get_jobs()]

    def _add_jobs(self) -> None:
        self.scheduler.add_job(
            self.orchestrator.cleanup_tick,
            trigger="interval",
            seconds=self.settings.analytics_cleanup_interval_seconds,
            id=CLEANUP_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        if self.settings.auto_benchmarking:
            self.scheduler.add_job(
                self.orchestrator.auto_benchmark_tick,
                trigger="interval",
                seconds=self.settings.auto_benchmark_interval_seconds,
                id=AUTO_BENCHMARK_JOB_ID,
                replace_existing=True,
                max_instances=1,
                coalesce=True,
            )

    def start(self) -> None:
        """Must be called from inside a running event loop."""
        if self.scheduler.running:
            return
        self._add_jobs()
        self.scheduler.start()
        logger.info(
            "background_jobs_started",
            jobs=self.job_ids(),
            auto_benchmarking=self.settings.auto_benchmarking,
        )

    def shutdown(self) -> None:
        if not self.scheduler.running:
            return
        self.scheduler.shutdown(wait=False)
        logger.info("background_jobs_stopped")
