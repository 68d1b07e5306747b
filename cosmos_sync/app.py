"""Typer CLI entrypoint for cosmos-sync."""

from __future__ import annotations

import re
import signal
import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, List, Optional

import typer
from pydantic_core import to_json
from rich import box
from rich.console import Console
from rich.table import Table
from typer import BadParameter

from .bootstrap import AppState, build_state
from .errors import CacheFailure, ConfigurationFailure, FetchFailure, PersistFailure, ServiceDegraded
from .logging_conf import available_domain_logs, default_log_dir, tail_log
from .models import SyncResult
from .sync import CatalogService, FeedService, PositionService, SyncService, TelemetryService

app = typer.Typer(
    help="cosmos-sync command line",
    no_args_is_help=True,
    rich_markup_mode=None,
)
log_app = typer.Typer(
    name="log",
    help="Inspect log files",
    no_args_is_help=True,
    rich_markup_mode=None,
)

console = Console()

_DURATION_PATTERN = re.compile(r"(?P<value>\d+)(?P<unit>[smhd])", re.IGNORECASE)
_UNITS = {"s": "seconds", "m": "minutes", "h": "hours", "d": "days"}


def _parse_datetime_option(value: str, option_name: str) -> datetime:
    text = value.strip()
    if not text:
        raise BadParameter(f"{option_name} cannot be empty.")
    normalized = text[:-1] + "+00:00" if text.endswith("Z") else text
    try:
        candidate = datetime.fromisoformat(normalized)
    except ValueError as exc:
        raise BadParameter(f"{option_name} must be ISO8601, e.g. 2024-10-14T08:00+00:00.") from exc
    if candidate.tzinfo is None:
        return candidate.replace(tzinfo=timezone.utc)
    return candidate.astimezone(timezone.utc)


def _parse_duration_option(value: Optional[str], option_name: str) -> timedelta:
    """Accept plain hours (``6``) or unit sequences such as ``1d12h`` / ``90m``."""

    if value is None:
        return timedelta(hours=24)
    spec = value.strip().lower()
    if not spec:
        raise BadParameter(f"{option_name} cannot be empty.")
    if spec.isdigit():
        hours = int(spec)
        if hours <= 0:
            raise BadParameter(f"{option_name} must be greater than 0.")
        return timedelta(hours=hours)
    total = timedelta()
    index = 0
    for match in _DURATION_PATTERN.finditer(spec):
        if match.start() != index:
            raise BadParameter(f"{option_name} has an unsupported format: {value}")
        total += timedelta(**{_UNITS[match.group("unit").lower()]: int(match.group("value"))})
        index = match.end()
    if index != len(spec) or total <= timedelta():
        raise BadParameter(f"{option_name} has an unsupported format: {value}")
    return total


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(verbose=False)
        ctx.obj = state
    return state


def _service(state: AppState, domain: str) -> SyncService:
    try:
        return state.service(domain)
    except KeyError as exc:
        raise BadParameter(str(exc.args[0]), param_hint="DOMAIN") from exc
    except ConfigurationFailure as exc:
        console.print(f"{domain} is not configured: {exc}", style="red")
        raise typer.Exit(code=1) from exc


def _print_json(value: Any) -> None:
    console.print_json(to_json(value, indent=2).decode("utf-8"))


def _render_result(result: SyncResult) -> Table:
    table = Table(title=f"{result.domain} sync", box=box.SIMPLE_HEAD)
    table.add_column("Status", style="cyan")
    table.add_column("Fetched", justify="right")
    table.add_column("Saved", justify="right", style="green")
    table.add_column("Finished", style="dim")
    table.add_column("Error", style="red", overflow="fold")
    table.add_row(
        result.status.value,
        str(result.fetched),
        str(result.saved),
        result.finished_at.isoformat(timespec="seconds"),
        result.error or "-",
    )
    return table


def _lock_label(state: AppState, domain: str) -> str:
    service = state.services.get(domain)
    if service is None:
        return "-"
    try:
        return "held" if state.cache.exists(service.lock_key) else "free"
    except CacheFailure:
        return "unknown"


app.add_typer(log_app, name="log", help="Show or tail log files")


@app.callback()
def main(
    ctx: typer.Context, verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging", is_flag=True)
) -> None:
    state = build_state(verbose)
    ctx.obj = state
    ctx.call_on_close(state.close)


@app.command("run", help="Start every enabled worker and the retention sweep until interrupted.")
def run(
    ctx: typer.Context,
    run_for: Optional[float] = typer.Option(None, "--for", help="Stop automatically after N seconds."),
) -> None:
    state = _get_state(ctx)
    stop_requested = threading.Event()

    def _request_stop(signum, frame) -> None:  # noqa: ARG001
        stop_requested.set()

    previous_handlers = {}
    if threading.current_thread() is threading.main_thread():
        for signum in (signal.SIGINT, signal.SIGTERM):
            previous_handlers[signum] = signal.signal(signum, _request_stop)

    state.scheduler.start()
    state.retention.start()
    names = ", ".join(worker.name for worker in state.scheduler.workers) or "none"
    console.print(f"Scheduler running · workers: {names}", style="green")
    for domain, reason in state.skipped.items():
        console.print(f"{domain} skipped: {reason}", style="yellow")
    try:
        stop_requested.wait(run_for)
    finally:
        graceful = state.scheduler.stop()
        state.retention.shutdown()
        for signum, handler in previous_handlers.items():
            signal.signal(signum, handler)
    if graceful:
        console.print("Scheduler stopped.", style="green")
    else:
        console.print(
            f"Scheduler stop exceeded {state.config.scheduler.shutdown_timeout}s; see logs for pending workers.",
            style="yellow",
        )


@app.command("sync", help="Force one synchronization now, bypassing the fetch lock.")
def sync(ctx: typer.Context, domain: str = typer.Argument(..., help="Domain name, e.g. position")) -> None:
    state = _get_state(ctx)
    service = _service(state, domain)
    try:
        result = service.force_sync()
    except (FetchFailure, PersistFailure) as exc:
        console.print(f"{domain} sync failed: {exc}", style="red")
        raise typer.Exit(code=1) from exc
    console.print(_render_result(result))


@app.command("status", help="Show configured workers and their fetch locks.")
def status(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    table = Table(title=f"Workers · {len(state.config.domains)} domains", box=box.SIMPLE_HEAD)
    table.add_column("Domain", style="cyan", no_wrap=True)
    table.add_column("Enabled")
    table.add_column("Interval", justify="right")
    table.add_column("Initial sync", style="magenta")
    table.add_column("Timeout", justify="right")
    table.add_column("Lock", style="yellow")
    table.add_column("Note", style="dim", overflow="fold")
    for domain in state.config.domains:
        settings = state.config.worker(domain)
        table.add_row(
            domain,
            "yes" if settings.enabled else "no",
            f"{settings.interval:g}s",
            settings.initial_sync.value,
            f"{settings.timeout:g}s",
            _lock_label(state, domain),
            state.skipped.get(domain, ""),
        )
    console.print(table)


@app.command("latest", help="Print the latest stored record for a domain as JSON.")
def latest(ctx: typer.Context, domain: str = typer.Argument(...)) -> None:
    state = _get_state(ctx)
    service = _service(state, domain)
    try:
        value = service.get_latest()  # type: ignore[attr-defined]
    except ServiceDegraded as exc:
        console.print(str(exc), style="red")
        raise typer.Exit(code=1) from exc
    if not value:
        console.print(f"No {domain} data yet.", style="dim")
        return
    _print_json(value)


@app.command("trend", help="Movement between the two newest positions.")
def trend(ctx: typer.Context, limit: int = typer.Option(240, "--limit", help="Trend window size.")) -> None:
    state = _get_state(ctx)
    service = _service(state, "position")
    try:
        result = service.get_trend(limit)
    except ServiceDegraded as exc:
        console.print(str(exc), style="red")
        raise typer.Exit(code=1) from exc
    _print_json(result)


def _history_rows(service: SyncService, records: Iterable[Any]) -> Table:
    table = Table(box=box.SIMPLE_HEAD)
    if isinstance(service, TelemetryService):
        table.add_column("Recorded", style="cyan")
        table.add_column("Voltage", justify="right")
        table.add_column("Temperature", justify="right")
        for sample in records:
            table.add_row(sample.recorded_at.isoformat(timespec="seconds"), f"{sample.voltage:.2f}", f"{sample.temperature:.2f}")
    elif isinstance(service, PositionService):
        table.add_column("Fetched", style="cyan")
        table.add_column("Latitude", justify="right")
        table.add_column("Longitude", justify="right")
        for log in records:
            table.add_row(
                log.fetched_at.isoformat(timespec="seconds"),
                str(log.payload.get("latitude", "-")),
                str(log.payload.get("longitude", "-")),
            )
    else:
        table.add_column("Fetched", style="cyan")
        table.add_column("Keys", style="dim", overflow="fold")
        for snapshot in records:
            table.add_row(snapshot.fetched_at.isoformat(timespec="seconds"), ", ".join(sorted(snapshot.payload)))
    return table


@app.command("history", help="List stored records of a domain within a time range.")
def history(
    ctx: typer.Context,
    domain: str = typer.Argument(...),
    since: Optional[str] = typer.Option(None, "--since", help="Range start (ISO8601)."),
    until: Optional[str] = typer.Option(None, "--until", help="Range end (ISO8601)."),
    window: Optional[str] = typer.Option(None, "--window", help="Range length when --since is omitted, e.g. 6h, 2d."),
) -> None:
    state = _get_state(ctx)
    service = _service(state, domain)
    if isinstance(service, CatalogService):
        raise BadParameter("catalog has no time history; use `cosmos-sync catalog`.", param_hint="DOMAIN")
    end = _parse_datetime_option(until, "--until") if until else None
    start = _parse_datetime_option(since, "--since") if since else None
    if start is None:
        start = (end or datetime.now(timezone.utc)) - _parse_duration_option(window, "--window")
    if end is not None and end <= start:
        raise BadParameter("--until must be later than --since.")
    try:
        records: List[Any] = service.get_history(start, end)  # type: ignore[attr-defined]
    except ServiceDegraded as exc:
        console.print(str(exc), style="red")
        raise typer.Exit(code=1) from exc
    if not records:
        console.print(f"No {domain} records in range.", style="dim")
        return
    table = _history_rows(service, records)
    table.title = f"{domain} · {len(records)} records"
    console.print(table)


@app.command("catalog", help="Page through stored catalog datasets.")
def catalog(
    ctx: typer.Context,
    page: int = typer.Option(1, "--page"),
    limit: int = typer.Option(20, "--limit"),
    search: Optional[str] = typer.Option(None, "--search", help="Match title or dataset id."),
) -> None:
    state = _get_state(ctx)
    service = _service(state, "catalog")
    try:
        items = service.search(search, limit) if search else service.get_list(page, limit)
    except ServiceDegraded as exc:
        console.print(str(exc), style="red")
        raise typer.Exit(code=1) from exc
    if not items:
        console.print("No catalog datasets stored yet.", style="dim")
        return
    table = Table(title=f"Catalog · page {page}", box=box.SIMPLE_HEAD)
    table.add_column("Dataset", style="cyan", no_wrap=True)
    table.add_column("Title", overflow="fold")
    table.add_column("Status", style="magenta")
    table.add_column("Updated", style="dim")
    for item in items:
        table.add_row(
            item.dataset_id,
            item.title or "-",
            item.status or "-",
            item.updated_at.isoformat(timespec="seconds") if item.updated_at else "-",
        )
    console.print(table)


@app.command("items", help="Items matched from a feed's latest snapshot by its declared schema.")
def items(ctx: typer.Context, feed: str = typer.Argument(...)) -> None:
    state = _get_state(ctx)
    service = _service(state, feed)
    if not isinstance(service, FeedService):
        raise BadParameter(f"{feed} is not a feed.", param_hint="FEED")
    if service.schema is None:
        console.print(f"{feed} declares no item schema.", style="yellow")
        return
    try:
        matched = service.get_items()
    except ServiceDegraded as exc:
        console.print(str(exc), style="red")
        raise typer.Exit(code=1) from exc
    if not matched:
        console.print(f"No {feed} items yet.", style="dim")
        return
    _print_json(matched)


@app.command("sweep", help="Run the retention sweep once.")
def sweep(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    report = state.retention.run_once()
    table = Table(title="Retention sweep", box=box.SIMPLE_HEAD)
    table.add_column("Table", style="cyan")
    table.add_column("Deleted", justify="right", style="green")
    table.add_row("telemetry_samples", str(report.telemetry))
    table.add_row("position_logs", str(report.positions))
    table.add_row("feed_snapshots", str(report.feeds))
    console.print(table)
    if report.errors:
        console.print(f"{report.errors} table(s) failed; see error log.", style="red")
        raise typer.Exit(code=1)


@log_app.command("list", help="List available log files.")
def log_list() -> None:
    logs = list(available_domain_logs())
    if not logs:
        console.print("No domain logs yet.", style="dim")
        return
    table = Table(box=box.SIMPLE_HEAD)
    table.add_column("File", style="green")
    for path in logs:
        table.add_row(path.name)
    console.print(table)


@log_app.command("tail", help="Show the most recent lines of a log.")
def log_tail(
    domain: Optional[str] = typer.Option(None, "--domain", help="Domain log (global sync log when omitted)."),
    lines: int = typer.Option(100, "--lines", help="Number of lines to show."),
) -> None:
    base_dir = default_log_dir()
    path = base_dir / "domains" / f"{domain}.log" if domain else base_dir / "sync.log"
    content = tail_log(path, lines)
    if not content:
        console.print("No log lines yet.", style="dim")
        return
    console.print(f"{domain or 'sync'} · last {len(content)} lines", style="cyan")
    console.print("".join(content), markup=False, highlight=False)


def cli() -> None:
    app()


if __name__ == "__main__":
    cli()


__all__ = ["app", "cli"]
