"""interview_sync.cli

Unified command line entry point.

Modes:
  relations  directory -> plan -> provision members -> write relation links
  videos     embed a video block into interview pages that lack one
  all        relations, then videos

Credentials and database ids are read from env vars (a .env file in the
working directory is loaded first); the CLI only takes the env var names.
"""

from __future__ import annotations

import logging
import sys
import uuid
from datetime import datetime
from pathlib import Path

import click
from dotenv import load_dotenv

from interview_sync.config import (
    DEFAULT_INTERVIEW_DB_ENV,
    DEFAULT_MEMBER_DB_ENV,
    DEFAULT_TOKEN_ENV,
    ConfigError,
    PropertyMap,
    PropertyMapValidationError,
    SyncSettings,
    load_property_map,
)
from interview_sync.directory import load_member_directory
from interview_sync.properties import PropertyShapeError
from interview_sync.provision import provision_members
from interview_sync.reconcile import plan_updates
from interview_sync.record_store import AuthError, Backoff, NotionRecordStore, RemoteCallError
from interview_sync.shared import SyncCounters, build_sync_report, write_run_report
from interview_sync.video_embed import embed_videos
from interview_sync.writer import apply_updates


def _run_relations(
    run_id: str,
    store: NotionRecordStore,
    settings: SyncSettings,
    props: PropertyMap,
    counters: SyncCounters,
    max_workers: int,
    dry_run: bool,
) -> None:
    directory = load_member_directory(store, settings.member_database_id, props, counters)
    click.echo(f"[{run_id}] Directory: {len(directory)} members")

    updates = plan_updates(store, settings.interview_database_id, directory, props, counters)
    click.echo(
        f"[{run_id}] Planned {len(updates)} updates "
        f"({counters.names_unresolved} unresolved names, {counters.parse_errors} unparsable titles)"
    )
    if not updates:
        return

    created = provision_members(
        store, settings.member_database_id, updates, props, counters,
        max_workers=max_workers, dry_run=dry_run,
    )
    if created:
        click.echo(f"[{run_id}] Created {len(created)} member pages")

    apply_updates(store, updates, props, counters, max_workers=max_workers, dry_run=dry_run)


def _run_videos(
    run_id: str,
    store: NotionRecordStore,
    settings: SyncSettings,
    props: PropertyMap,
    counters: SyncCounters,
    max_workers: int,
    dry_run: bool,
) -> None:
    click.echo(f"[{run_id}] Checking interview pages for video blocks")
    embed_videos(
        store, settings.interview_database_id, props, counters,
        max_workers=max_workers, dry_run=dry_run,
    )


@click.command()
@click.option(
    "--mode",
    default="relations",
    type=click.Choice(["relations", "videos", "all"]),
    show_default=True,
    help="Which sync flow to run",
)
@click.option("--token-env", default=DEFAULT_TOKEN_ENV, show_default=True, help="Env var name holding the integration token")
@click.option("--interview-db-env", default=DEFAULT_INTERVIEW_DB_ENV, show_default=True, help="Env var name holding the interview database id")
@click.option("--member-db-env", default=DEFAULT_MEMBER_DB_ENV, show_default=True, help="Env var name holding the member database id")
@click.option("--property-map", default=None, type=click.Path(), help="YAML file overriding database property names")
@click.option("--max-workers", default=4, type=click.IntRange(min=1), show_default=True, help="Concurrent create/update/append calls")
@click.option("--request-timeout", default=30.0, type=float, show_default=True, help="Per-request timeout in seconds")
@click.option("--max-attempts", default=5, type=click.IntRange(min=1), show_default=True, help="Attempts per call on 429/5xx/transport errors")
@click.option("--retry-base-delay", default=1.0, type=float, show_default=True, help="First backoff delay in seconds; doubles per retry")
@click.option("--dry-run", is_flag=True, default=False, help="Plan and report without creating or updating anything")
@click.option("--run-id", default=None, help="Override UUID for log correlation")
@click.option("--report-dir", default=None, type=click.Path(), help="Write a JSON run report into this directory")
@click.option(
    "--log-level",
    default="INFO",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    show_default=True,
)
def main(
    mode: str,
    token_env: str,
    interview_db_env: str,
    member_db_env: str,
    property_map: str | None,
    max_workers: int,
    request_timeout: float,
    max_attempts: int,
    retry_base_delay: float,
    dry_run: bool,
    run_id: str | None,
    report_dir: str | None,
    log_level: str,
) -> None:
    """Sync interview relations and video blocks in Notion."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    load_dotenv(Path.cwd() / ".env")
    run_id = run_id or str(uuid.uuid4())
    started_at = datetime.utcnow().isoformat()
    counters = SyncCounters()

    try:
        settings = SyncSettings.from_env(
            token_env=token_env,
            interview_db_env=interview_db_env,
            member_db_env=member_db_env,
        )
    except ConfigError as exc:
        click.echo(f"[{run_id}] FATAL: {exc}", err=True)
        sys.exit(1)

    try:
        props = load_property_map(Path(property_map) if property_map else None)
    except (FileNotFoundError, PropertyMapValidationError) as exc:
        click.echo(f"[{run_id}] FATAL: --property-map: {exc}", err=True)
        sys.exit(1)

    store = NotionRecordStore(
        settings.token,
        backoff=Backoff(base_delay=retry_base_delay, max_attempts=max_attempts),
        timeout=request_timeout,
    )

    click.echo(f"[{run_id}] Starting {mode} run (dry_run={dry_run})")
    try:
        if mode in ("relations", "all"):
            _run_relations(run_id, store, settings, props, counters, max_workers, dry_run)
        if mode in ("videos", "all"):
            _run_videos(run_id, store, settings, props, counters, max_workers, dry_run)
    except AuthError as exc:
        counters.safe_stop_reason = "auth_failed"
        counters.fail("auth_failed", "-", str(exc))
    except (RemoteCallError, PropertyShapeError) as exc:
        # Pagination or directory failures leave nothing consistent to continue with.
        counters.safe_stop_reason = "fatal_read_error"
        counters.fail("fatal_read_error", "-", str(exc))

    counters.requests_sent = store.stats.requests_sent
    counters.retries = store.stats.retries
    counters.rate_limit_hits = store.stats.rate_limit_hits

    click.echo(build_sync_report(counters, mode=mode, dry_run=dry_run))

    if report_dir:
        report_path = write_run_report(
            Path(report_dir), run_id, started_at, mode, dry_run, counters,
        )
        click.echo(f"[{run_id}] Run report: {report_path}")

    if counters.safe_stop_reason:
        click.echo(f"[{run_id}] Safe stop: {counters.safe_stop_reason}", err=True)
        sys.exit(1)
    if counters.remote_failures > 0:
        click.echo(
            f"[{run_id}] {counters.remote_failures} record(s) failed; exiting non-zero",
            err=True,
        )
        sys.exit(1)


if __name__ == "__main__":
    main()
