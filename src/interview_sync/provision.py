"""interview_sync.provision

Creates member pages for names the directory does not know yet and
back-fills the new page ids into every staged link that carries the name.
"""

from __future__ import annotations

import logging

from interview_sync.config import PropertyMap
from interview_sync.properties import title_value
from interview_sync.reconcile import PendingUpdate
from interview_sync.record_store import AuthError, NotionRecordStore
from interview_sync.shared import SyncCounters, run_batch

log = logging.getLogger(__name__)


def collect_missing_names(updates: list[PendingUpdate]) -> list[str]:
    """Unique unresolved names across all updates, in first-seen order."""
    names: list[str] = []
    seen: set[str] = set()
    for update in updates:
        for link in update.links():
            if link.page_id is None and link.name not in seen:
                seen.add(link.name)
                names.append(link.name)
    return names


def backfill_ids(updates: list[PendingUpdate], created: dict[str, str]) -> int:
    """Set page_id on every unresolved link whose name was created. Returns links filled."""
    filled = 0
    for update in updates:
        for link in update.links():
            if link.page_id is None and link.name in created:
                link.page_id = created[link.name]
                filled += 1
    return filled


def provision_members(
    store: NotionRecordStore,
    database_id: str,
    updates: list[PendingUpdate],
    props: PropertyMap,
    counters: SyncCounters,
    max_workers: int = 4,
    dry_run: bool = False,
) -> dict[str, str]:
    """Create one member page per missing name; return name -> new page id.

    Names whose creation fails are recorded and stay unresolved, so the
    writer skips only those links and still writes the rest of the record.
    """
    names = collect_missing_names(updates)
    if not names:
        return {}

    if dry_run:
        for name in names:
            log.info("[dry-run] would create member %r", name)
        return {}

    def _create(name: str) -> str:
        return store.create_page(database_id, {props.member_name: title_value(name)})

    created: dict[str, str] = {}
    for name, page_id, exc in run_batch(_create, names, max_workers):
        if isinstance(exc, AuthError):
            raise exc
        if exc is not None:
            counters.member_create_failures += 1
            counters.fail("create_failed", name, str(exc))
            continue
        created[name] = page_id
        counters.members_created += 1
        log.info("created member %r -> %s", name, page_id)

    backfill_ids(updates, created)
    return created
