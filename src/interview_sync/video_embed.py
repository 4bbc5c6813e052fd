"""interview_sync.video_embed

Appends an external video block to each interview page that has a video
URL but no video block yet. Independent of the relation flow.
"""

from __future__ import annotations

import logging
from typing import Any

from interview_sync.config import PropertyMap
from interview_sync.properties import PropertyShapeError, get_url
from interview_sync.record_store import AuthError, NotionRecordStore
from interview_sync.shared import SyncCounters, run_batch

log = logging.getLogger(__name__)

APPENDED = "appended"
PRESENT = "present"


def has_video_block(blocks: list[dict[str, Any]]) -> bool:
    return any(b.get("type") == "video" for b in blocks)


def build_video_block(url: str) -> dict[str, Any]:
    return {
        "object": "block",
        "type": "video",
        "video": {"type": "external", "external": {"url": url}},
    }


def embed_video(store: NotionRecordStore, page_id: str, url: str, dry_run: bool = False) -> str:
    """Append a video block unless one exists. Returns APPENDED or PRESENT."""
    if has_video_block(store.list_child_blocks(page_id)):
        return PRESENT
    if dry_run:
        log.info("[dry-run] would embed %s into %s", url, page_id)
    else:
        store.append_child_blocks(page_id, [build_video_block(url)])
    return APPENDED


def embed_videos(
    store: NotionRecordStore,
    database_id: str,
    props: PropertyMap,
    counters: SyncCounters,
    max_workers: int = 4,
    dry_run: bool = False,
) -> None:
    for results in store.iter_table(database_id):
        targets: list[tuple[str, str]] = []
        for page in results:
            page_id = str(page["id"])
            try:
                url = get_url(page, props.video_url)
            except PropertyShapeError as exc:
                counters.shape_errors += 1
                counters.fail("shape_error", page_id, str(exc))
                continue
            if url is None:
                counters.videos_skipped_no_url += 1
                continue
            targets.append((page_id, url))

        def _embed(target: tuple[str, str]) -> str:
            return embed_video(store, target[0], target[1], dry_run=dry_run)

        for (page_id, url), outcome, exc in run_batch(_embed, targets, max_workers):
            counters.videos_checked += 1
            if isinstance(exc, AuthError):
                raise exc
            if exc is not None:
                counters.video_failures += 1
                counters.fail("video_failed", page_id, str(exc))
            elif outcome == PRESENT:
                counters.videos_already_present += 1
            else:
                counters.videos_appended += 1
                if not dry_run:
                    log.info("embedded video %s into %s", url, page_id)
