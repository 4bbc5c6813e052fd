"""interview_sync.reconcile

Reconciliation planner: compares the names in each interview title with the
record's interviewee/interviewer relations and stages the missing links.

Processing order per interview record:
  1.  Read the title text and parse it              → TitleInfo
  2.  Read the live interviewee/interviewer relation ids
  3.  Subject: directory hit not yet linked          → staged link with id
               directory miss                        → staged name-only link
  4.  Associates: same rule against interviewer ids, first occurrence only
  5.  Emit a PendingUpdate only when 3 or 4 staged something

A record whose title does not parse, or whose properties have the wrong
shape, is skipped and recorded; the rest of the table is still planned.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from interview_sync.config import PropertyMap
from interview_sync.directory import MemberEntry
from interview_sync.normalize import normalize_page_id
from interview_sync.properties import PropertyShapeError, get_plain_text, read_relation_ids
from interview_sync.record_store import AuthError, NotionRecordStore, RemoteCallError
from interview_sync.shared import SyncCounters
from interview_sync.title_parser import TitleParseError, parse_title

log = logging.getLogger(__name__)


@dataclass
class MemberLink:
    name: str
    page_id: str | None = None  # None until the member page exists


@dataclass
class PendingUpdate:
    page_id: str
    title: str = ""
    interviewee: MemberLink | None = None
    interviewers: list[MemberLink] = field(default_factory=list)
    existing_interviewee_ids: list[str] = field(default_factory=list)
    existing_interviewer_ids: list[str] = field(default_factory=list)

    def links(self) -> list[MemberLink]:
        out = [self.interviewee] if self.interviewee is not None else []
        return out + self.interviewers


def _stage(
    name: str,
    directory: dict[str, MemberEntry],
    linked: set[str],
) -> MemberLink | None:
    """Link to stage for ``name``, or None when it is already linked."""
    entry = directory.get(name)
    if entry is None:
        return MemberLink(name=name)
    if normalize_page_id(entry.page_id) in linked:
        return None
    return MemberLink(name=name, page_id=entry.page_id)


def plan_page(
    page_id: str,
    title: str | None,
    interviewee_ids: list[str],
    interviewer_ids: list[str],
    directory: dict[str, MemberEntry],
    counters: SyncCounters,
) -> PendingUpdate | None:
    """Plan one interview record.

    Raises:
        TitleParseError: title does not match the interview pattern.
    """
    info = parse_title(title)
    update = PendingUpdate(
        page_id=page_id,
        title=title or "",
        existing_interviewee_ids=list(interviewee_ids),
        existing_interviewer_ids=list(interviewer_ids),
    )

    linked_interviewees = {normalize_page_id(i) for i in interviewee_ids}
    update.interviewee = _stage(info.subject_name, directory, linked_interviewees)

    linked_interviewers = {normalize_page_id(i) for i in interviewer_ids}
    seen: set[str] = set()
    for name in info.associate_names:
        if name in seen:
            counters.duplicate_associates_dropped += 1
            counters.warn(f"page {page_id}: interviewer {name!r} listed twice in title; keeping first")
            continue
        seen.add(name)
        link = _stage(name, directory, linked_interviewers)
        if link is not None:
            update.interviewers.append(link)

    if update.interviewee is None and not update.interviewers:
        return None
    return update


def plan_updates(
    store: NotionRecordStore,
    database_id: str,
    directory: dict[str, MemberEntry],
    props: PropertyMap,
    counters: SyncCounters,
) -> list[PendingUpdate]:
    """Page through the interview table and collect every PendingUpdate."""
    updates: list[PendingUpdate] = []
    for results in store.iter_table(database_id):
        for page in results:
            counters.interviews_read += 1
            update = _plan_record(store, page, directory, props, counters)
            if update is None:
                continue
            updates.append(update)
            counters.updates_planned += 1
            for link in update.links():
                counters.links_staged += 1
                if link.page_id is None:
                    counters.names_unresolved += 1
    log.info("planned %d updates from %d interviews", len(updates), counters.interviews_read)
    return updates


def _plan_record(
    store: NotionRecordStore,
    page: dict[str, Any],
    directory: dict[str, MemberEntry],
    props: PropertyMap,
    counters: SyncCounters,
) -> PendingUpdate | None:
    page_id = str(page["id"])
    try:
        title = get_plain_text(page, props.interview_title)
        interviewee_ids = read_relation_ids(store, page, props.interviewee)
        interviewer_ids = read_relation_ids(store, page, props.interviewer)
        return plan_page(page_id, title, interviewee_ids, interviewer_ids, directory, counters)
    except TitleParseError as exc:
        counters.parse_errors += 1
        counters.fail("parse_error", page_id, str(exc))
    except PropertyShapeError as exc:
        counters.shape_errors += 1
        counters.fail("shape_error", page_id, str(exc))
    except AuthError:
        raise
    except RemoteCallError as exc:
        counters.relation_lookup_failures += 1
        counters.fail("lookup_failed", page_id, str(exc))
    return None
