"""interview_sync.shared

Run bookkeeping shared by the relation and video flows: counters, per-record
failure records, the bounded batch runner, and report writing.
"""

from __future__ import annotations

import json
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Iterable, TypeVar

log = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

MAX_WARNINGS = 200


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------

@dataclass
class RunFailure:
    """One record (or member name) that could not be processed."""

    kind: str  # parse_error | shape_error | lookup_failed | create_failed | update_failed | video_failed
    target: str
    detail: str

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind, "target": self.target, "detail": self.detail}


# ---------------------------------------------------------------------------
# Counters
# ---------------------------------------------------------------------------

@dataclass
class SyncCounters:
    # Directory
    members_read: int = 0
    members_skipped_empty_name: int = 0
    directory_duplicate_names: int = 0
    # Planner
    interviews_read: int = 0
    parse_errors: int = 0
    shape_errors: int = 0
    relation_lookup_failures: int = 0
    duplicate_associates_dropped: int = 0
    updates_planned: int = 0
    links_staged: int = 0
    names_unresolved: int = 0
    # Provisioner
    members_created: int = 0
    member_create_failures: int = 0
    # Writer
    updates_written: int = 0
    updates_skipped_unresolved: int = 0
    update_failures: int = 0
    # Video embedder
    videos_checked: int = 0
    videos_skipped_no_url: int = 0
    videos_already_present: int = 0
    videos_appended: int = 0
    video_failures: int = 0
    # Transport
    requests_sent: int = 0
    retries: int = 0
    rate_limit_hits: int = 0
    # Safe stop
    safe_stop_reason: str | None = None
    failures: list[RunFailure] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def warn(self, message: str) -> None:
        log.warning(message)
        if len(self.warnings) < MAX_WARNINGS:
            self.warnings.append(message)

    def fail(self, kind: str, target: str, detail: str) -> None:
        log.warning("%s: %s: %s", kind, target, detail)
        self.failures.append(RunFailure(kind, target, detail))

    @property
    def remote_failures(self) -> int:
        return (
            self.relation_lookup_failures
            + self.member_create_failures
            + self.update_failures
            + self.video_failures
        )

    def to_dict(self) -> dict[str, Any]:
        d = {
            k: v for k, v in self.__dict__.items()
            if k not in ("warnings", "failures")
        }
        d["failures"] = [f.to_dict() for f in self.failures]
        d["warnings"] = self.warnings[:50]
        return d


# ---------------------------------------------------------------------------
# Batch runner
# ---------------------------------------------------------------------------

def run_batch(
    fn: Callable[[T], R],
    items: Iterable[T],
    max_workers: int,
) -> list[tuple[T, R | None, Exception | None]]:
    """Apply fn to every item on a bounded thread pool.

    Returns (item, result, error) triples in input order; exactly one of
    result/error is meaningful per item. Exceptions never escape, so the
    caller decides per item how a failure is recorded.
    """
    items = list(items)
    if not items:
        return []

    def _call(item: T) -> tuple[T, R | None, Exception | None]:
        try:
            return item, fn(item), None
        except Exception as exc:  # noqa: BLE001
            return item, None, exc

    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as pool:
        return list(pool.map(_call, items))


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------

def build_sync_report(counters: SyncCounters, mode: str, dry_run: bool) -> str:
    lines = [
        "=== Interview Sync Run Report ===",
        f"mode             : {mode}",
        f"dry_run          : {dry_run}",
    ]
    if mode in ("relations", "all"):
        lines += [
            "",
            "--- Directory ---",
            f"members_read              : {counters.members_read}",
            f"skipped(empty name)       : {counters.members_skipped_empty_name}",
            f"duplicate_names           : {counters.directory_duplicate_names}",
            "",
            "--- Reconciliation ---",
            f"interviews_read           : {counters.interviews_read}",
            f"parse_errors              : {counters.parse_errors}",
            f"shape_errors              : {counters.shape_errors}",
            f"relation_lookup_failures  : {counters.relation_lookup_failures}",
            f"duplicate_associates      : {counters.duplicate_associates_dropped}",
            f"updates_planned           : {counters.updates_planned}",
            f"links_staged              : {counters.links_staged}",
            f"names_unresolved          : {counters.names_unresolved}",
            "",
            "--- Provisioning / Writes ---",
            f"members_created           : {counters.members_created}",
            f"member_create_failures    : {counters.member_create_failures}",
            f"updates_written           : {counters.updates_written}",
            f"skipped(unresolved)       : {counters.updates_skipped_unresolved}",
            f"update_failures           : {counters.update_failures}",
        ]
    if mode in ("videos", "all"):
        lines += [
            "",
            "--- Videos ---",
            f"videos_checked            : {counters.videos_checked}",
            f"skipped(no url)           : {counters.videos_skipped_no_url}",
            f"already_present           : {counters.videos_already_present}",
            f"videos_appended           : {counters.videos_appended}",
            f"video_failures            : {counters.video_failures}",
        ]
    lines += [
        "",
        "--- Transport ---",
        f"requests_sent    : {counters.requests_sent}",
        f"retries          : {counters.retries}",
        f"rate_limit_hits  : {counters.rate_limit_hits}",
    ]
    if counters.safe_stop_reason:
        lines.append(f"safe_stop_reason : {counters.safe_stop_reason}")
    if counters.failures:
        lines += ["", f"--- Failures (first 10 of {len(counters.failures)}) ---"]
        lines += [f"  [{f.kind}] {f.target}: {f.detail}" for f in counters.failures[:10]]
    if counters.warnings:
        lines += ["", "--- Warnings (first 10) ---"]
        lines += [f"  {w}" for w in counters.warnings[:10]]
    return "\n".join(lines)


def write_run_report(
    report_dir: Path,
    run_id: str,
    started_at: str,
    mode: str,
    dry_run: bool,
    counters: SyncCounters,
) -> Path:
    report = {
        "run_id": run_id,
        "mode": mode,
        "started_at": started_at,
        "finished_at": datetime.utcnow().isoformat(),
        "dry_run": dry_run,
        "counters": counters.to_dict(),
    }
    report_path = report_dir / f"{run_id}.json"
    report_path.parent.mkdir(parents=True, exist_ok=True)
    report_path.write_text(json.dumps(report, indent=2, default=str, ensure_ascii=False))
    return report_path
