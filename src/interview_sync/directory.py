"""interview_sync.directory

Builds the member directory: normalized display name -> member page.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from interview_sync.config import PropertyMap
from interview_sync.normalize import normalize_member_name
from interview_sync.properties import get_plain_text
from interview_sync.record_store import NotionRecordStore
from interview_sync.shared import SyncCounters

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class MemberEntry:
    page_id: str
    display_name: str


def load_member_directory(
    store: NotionRecordStore,
    database_id: str,
    props: PropertyMap,
    counters: SyncCounters,
) -> dict[str, MemberEntry]:
    """Page through the member table and index it by normalized name.

    Records with an empty name are skipped. When two records normalize to
    the same key the later one wins.
    """
    directory: dict[str, MemberEntry] = {}
    for results in store.iter_table(database_id):
        for page in results:
            counters.members_read += 1
            display_name = get_plain_text(page, props.member_name)
            key = normalize_member_name(display_name)
            if key is None:
                counters.members_skipped_empty_name += 1
                continue
            if key in directory:
                counters.directory_duplicate_names += 1
                log.debug(
                    "member name %r appears more than once; %s replaces %s",
                    key, page["id"], directory[key].page_id,
                )
            directory[key] = MemberEntry(page_id=str(page["id"]), display_name=display_name or key)
    log.info("member directory loaded: %d names", len(directory))
    return directory
