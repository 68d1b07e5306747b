"""APScheduler-driven retention sweep for append-only history tables."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

import structlog
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from ..config import RetentionConfig
from ..errors import PersistFailure
from ..logging_conf import component_logger
from ..models import utcnow
from ..repository import FeedRepository, PositionRepository, TelemetryRepository

JOB_ID = "retention::sweep"


@dataclass(slots=True)
class SweepReport:
    telemetry: int = 0
    positions: int = 0
    feeds: int = 0
    errors: int = 0

    @property
    def total(self) -> int:
        return self.telemetry + self.positions + self.feeds


class RetentionSweeper:
    """Delete telemetry, position logs and feed snapshots past their retention window."""

    def __init__(
        self,
        config: RetentionConfig,
        telemetry: TelemetryRepository,
        positions: PositionRepository,
        feeds: FeedRepository,
        clock: Callable[[], datetime] = utcnow,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.config = config
        self.telemetry = telemetry
        self.positions = positions
        self.feeds = feeds
        self._clock = clock
        self.logger = logger or component_logger("retention")
        self.scheduler = BackgroundScheduler(timezone="UTC")
        self.started = False

    def start(self) -> None:
        if not self.config.enabled or self.started:
            return
        self.scheduler.add_job(
            self.run_once,
            trigger=self._build_trigger(),
            id=JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.start()
        self.started = True
        self.logger.info("retention_started", cron=self.config.cron, interval=self.config.interval)

    def shutdown(self) -> None:
        if self.started:
            self.scheduler.shutdown(wait=False)
            self.started = False
            self.logger.info("retention_stopped")

    def _build_trigger(self):
        if self.config.cron:
            return CronTrigger.from_crontab(self.config.cron, timezone="UTC")
        return IntervalTrigger(seconds=float(self.config.interval))

    def next_run_time(self) -> datetime | None:
        job = self.scheduler.get_job(JOB_ID)
        return job.next_run_time if job else None

    def run_once(self) -> SweepReport:
        """Sweep every table now; one failing table does not stop the others."""

        now = self._clock()
        telemetry_cutoff = now - timedelta(days=self.config.telemetry_days)
        history_cutoff = now - timedelta(days=self.config.history_days)
        report = SweepReport()
        for field, action in (
            ("telemetry", lambda: self.telemetry.delete_older_than(telemetry_cutoff)),
            ("positions", lambda: self.positions.delete_older_than(history_cutoff)),
            ("feeds", lambda: self.feeds.delete_older_than(history_cutoff)),
        ):
            try:
                setattr(report, field, action())
            except PersistFailure as exc:
                report.errors += 1
                self.logger.error("retention_failed", table=field, error=str(exc))
        self.logger.info(
            "retention_swept",
            telemetry=report.telemetry,
            positions=report.positions,
            feeds=report.feeds,
            errors=report.errors,
        )
        return report


__all__ = ["JOB_ID", "RetentionSweeper", "SweepReport"]
