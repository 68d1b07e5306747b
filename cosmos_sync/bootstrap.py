"""Wire configuration, storage, cache, services and workers together."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Mapping

import structlog

from .cache import CacheStore, build_cache
from .config import AppConfig, ConfigRepository
from .errors import ConfigurationFailure
from .infra import SQLiteManager
from .logging_conf import configure_logging, domain_logger
from .maintenance import RetentionSweeper
from .repository import CatalogRepository, FeedRepository, PositionRepository, TelemetryRepository
from .sources import CatalogClient, FeedClient, PositionClient, SyntheticTelemetrySource
from .sync import CatalogService, FeedService, PositionService, SyncService, TelemetryService
from .worker import Scheduler, ThreadPoolManager, Worker


@dataclass
class Repositories:
    positions: PositionRepository
    catalog: CatalogRepository
    telemetry: TelemetryRepository
    feeds: FeedRepository


@dataclass
class AppState:
    config: AppConfig
    repository: ConfigRepository
    storage: SQLiteManager
    db_path: Path
    cache: CacheStore
    repositories: Repositories
    services: Dict[str, SyncService]
    scheduler: Scheduler
    retention: RetentionSweeper
    logger: structlog.BoundLogger
    skipped: Dict[str, str] = field(default_factory=dict)

    def service(self, domain: str) -> SyncService:
        if domain in self.skipped:
            raise ConfigurationFailure(f"{domain}: {self.skipped[domain]}")
        try:
            return self.services[domain]
        except KeyError:
            raise KeyError(f"unknown domain '{domain}'; known: {', '.join(self.services)}") from None

    def close(self) -> None:
        self.scheduler.stop()
        self.retention.shutdown()
        for service in self.services.values():
            service.close()
        self.cache.close()
        self.storage.close_all()


def build_repositories(storage: SQLiteManager, db_path: Path) -> Repositories:
    return Repositories(
        positions=PositionRepository(storage, db_path),
        catalog=CatalogRepository(storage, db_path),
        telemetry=TelemetryRepository(storage, db_path),
        feeds=FeedRepository(storage, db_path),
    )


def build_services(
    config: AppConfig,
    cache: CacheStore,
    repositories: Repositories,
    verbose: bool = False,
) -> tuple[Dict[str, SyncService], Dict[str, str]]:
    """Build one service per domain.

    A domain whose source cannot be configured (missing credentials, an
    unusable URL) is logged once and skipped; the others still start.
    """

    factories: Dict[str, Callable[[structlog.BoundLogger], SyncService]] = {
        "position": lambda logger: PositionService(
            cache,
            PositionClient(config.position),
            repositories.positions,
            lock_ttl=config.worker("position").interval,
            logger=logger,
        ),
        "catalog": lambda logger: CatalogService(
            cache,
            CatalogClient(config.catalog),
            repositories.catalog,
            lock_ttl=config.catalog.lock_ttl,
            logger=logger,
        ),
        "telemetry": lambda logger: TelemetryService(
            cache,
            SyntheticTelemetrySource(config.telemetry),
            repositories.telemetry,
            lock_ttl=config.worker("telemetry").interval,
            logger=logger,
        ),
    }
    for feed in config.feeds:
        factories[feed.name] = lambda logger, feed=feed: FeedService(
            cache,
            FeedClient(feed),
            repositories.feeds,
            feed,
            lock_ttl=config.worker(feed.name).interval,
            logger=logger,
        )

    services: Dict[str, SyncService] = {}
    skipped: Dict[str, str] = {}
    for domain, factory in factories.items():
        logger = domain_logger(domain, verbose)
        try:
            services[domain] = factory(logger)
        except ConfigurationFailure as exc:
            logger.error("configuration_failed", error=str(exc))
            skipped[domain] = str(exc)
    return services, skipped


def build_scheduler(
    config: AppConfig,
    services: Mapping[str, SyncService],
    verbose: bool = False,
) -> Scheduler:
    pool = ThreadPoolManager()
    scheduler = Scheduler(shutdown_timeout=config.scheduler.shutdown_timeout, pool=pool)
    for domain, service in services.items():
        settings = config.worker(domain)
        if not settings.enabled:
            continue
        scheduler.add_worker(
            Worker(
                domain,
                service,
                interval=settings.interval,
                initial_sync=settings.initial_sync,
                timeout=settings.timeout,
                pool=pool,
                logger=domain_logger(domain, verbose).bind(component="worker"),
            )
        )
    return scheduler


def build_state(
    verbose: bool = False,
    repository: ConfigRepository | None = None,
    environ: Mapping[str, str] | None = None,
) -> AppState:
    logger = configure_logging(verbose)
    repository = repository or ConfigRepository()
    config = repository.load(environ)
    storage = SQLiteManager()
    db_path = config.database.resolved_path(repository.base_dir)
    cache = build_cache(config.cache)
    repositories = build_repositories(storage, db_path)
    services, skipped = build_services(config, cache, repositories, verbose)
    scheduler = build_scheduler(config, services, verbose)
    retention = RetentionSweeper(
        config.retention,
        telemetry=repositories.telemetry,
        positions=repositories.positions,
        feeds=repositories.feeds,
    )
    logger.debug(
        "state_built",
        database=str(db_path),
        cache=config.cache.backend,
        domains=list(services),
        skipped=list(skipped),
    )
    return AppState(
        config=config,
        repository=repository,
        storage=storage,
        db_path=db_path,
        cache=cache,
        repositories=repositories,
        services=services,
        scheduler=scheduler,
        retention=retention,
        logger=logger,
        skipped=skipped,
    )


__all__ = [
    "AppState",
    "Repositories",
    "build_repositories",
    "build_scheduler",
    "build_services",
    "build_state",
]
