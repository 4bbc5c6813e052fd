"""interview_sync.properties

Typed accessors for Notion page property values.

Each reader checks that the property exists and has the expected type and
raises PropertyShapeError otherwise, so a renamed or retyped column fails
loudly on the first record instead of producing silent empty values.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from interview_sync.normalize import trim

if TYPE_CHECKING:
    from interview_sync.record_store import NotionRecordStore


class PropertyShapeError(Exception):
    """Raised when a page property is missing or has an unexpected type."""


def _get_property(page: dict[str, Any], name: str, types: tuple[str, ...]) -> dict[str, Any]:
    props = page.get("properties")
    if not isinstance(props, dict) or name not in props:
        raise PropertyShapeError(f"page {page.get('id')}: missing property {name!r}")
    prop = props[name]
    if not isinstance(prop, dict) or prop.get("type") not in types:
        got = prop.get("type") if isinstance(prop, dict) else type(prop).__name__
        raise PropertyShapeError(
            f"page {page.get('id')}: property {name!r} has type {got!r}, "
            f"expected {' or '.join(types)}"
        )
    return prop


# ---------------------------------------------------------------------------
# Readers
# ---------------------------------------------------------------------------

def get_plain_text(page: dict[str, Any], name: str) -> str | None:
    """Concatenated plain text of a title or rich_text property, or None."""
    prop = _get_property(page, name, ("title", "rich_text"))
    segments = prop.get(prop["type"]) or []
    return trim("".join(str(s.get("plain_text") or "") for s in segments))


def get_url(page: dict[str, Any], name: str) -> str | None:
    prop = _get_property(page, name, ("url",))
    value = prop.get("url")
    return trim(value) if isinstance(value, str) else None


def get_relation_ids(page: dict[str, Any], name: str) -> tuple[list[str], bool]:
    """Return (related ids, has_more) as embedded in the page object."""
    prop = _get_property(page, name, ("relation",))
    ids = [str(r["id"]) for r in prop.get("relation") or [] if r.get("id")]
    return ids, bool(prop.get("has_more"))


def read_relation_ids(
    store: NotionRecordStore,
    page: dict[str, Any],
    name: str,
) -> list[str]:
    """Full relation id list, fetching the remainder when the page truncated it."""
    ids, has_more = get_relation_ids(page, name)
    if not has_more:
        return ids
    prop_id = page["properties"][name].get("id")
    if not prop_id:
        raise PropertyShapeError(
            f"page {page.get('id')}: truncated relation {name!r} has no property id"
        )
    return store.list_relation_ids(str(page["id"]), str(prop_id))


# ---------------------------------------------------------------------------
# Writers
# ---------------------------------------------------------------------------

def title_value(text: str) -> dict[str, Any]:
    return {"title": [{"type": "text", "text": {"content": text}}]}


def relation_value(page_ids: list[str]) -> dict[str, Any]:
    return {"relation": [{"id": pid} for pid in page_ids]}
