"""interview_sync.writer

Applies resolved relation links to interview records.

Each relation is written as existing ids followed by the newly resolved
ones, without duplicates: the API replaces a relation wholesale, so writing
only the new ids would unlink members added earlier.
"""

from __future__ import annotations

import logging
from typing import Any

from interview_sync.config import PropertyMap
from interview_sync.normalize import normalize_page_id
from interview_sync.properties import relation_value
from interview_sync.reconcile import PendingUpdate
from interview_sync.record_store import AuthError, NotionRecordStore
from interview_sync.shared import SyncCounters, run_batch

log = logging.getLogger(__name__)


def merge_ids(existing: list[str], new: list[str]) -> list[str]:
    out: list[str] = []
    seen: set[str | None] = set()
    for pid in [*existing, *new]:
        key = normalize_page_id(pid)
        if key in seen:
            continue
        seen.add(key)
        out.append(pid)
    return out


def build_update_properties(update: PendingUpdate, props: PropertyMap) -> dict[str, Any]:
    """Relation values to send for one record; empty when nothing is resolved."""
    properties: dict[str, Any] = {}
    if update.interviewee is not None and update.interviewee.page_id is not None:
        properties[props.interviewee] = relation_value(
            merge_ids(update.existing_interviewee_ids, [update.interviewee.page_id])
        )
    resolved = [link.page_id for link in update.interviewers if link.page_id is not None]
    if resolved:
        properties[props.interviewer] = relation_value(
            merge_ids(update.existing_interviewer_ids, resolved)
        )
    return properties


def apply_updates(
    store: NotionRecordStore,
    updates: list[PendingUpdate],
    props: PropertyMap,
    counters: SyncCounters,
    max_workers: int = 4,
    dry_run: bool = False,
) -> None:
    work: list[tuple[PendingUpdate, dict[str, Any]]] = []
    for update in updates:
        properties = build_update_properties(update, props)
        if not properties:
            counters.updates_skipped_unresolved += 1
            continue
        work.append((update, properties))

    if dry_run:
        for update, properties in work:
            log.info("[dry-run] would update %s: %s", update.page_id, sorted(properties))
        return

    def _write(item: tuple[PendingUpdate, dict[str, Any]]) -> None:
        update, properties = item
        store.update_page(update.page_id, properties)

    for (update, _), _, exc in run_batch(_write, work, max_workers):
        if isinstance(exc, AuthError):
            raise exc
        if exc is not None:
            counters.update_failures += 1
            counters.fail("update_failed", update.page_id, str(exc))
            continue
        counters.updates_written += 1
