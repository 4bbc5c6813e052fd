"""interview_sync.title_parser

Extracts the interviewee and interviewer names from an interview title.

Recognized shape (anything up to the last ``】`` before the subject, and
anything after the closing ``）``, is ignored)::

    【社員インタビュー】田中さんインタビュー（インタビューアー：鈴木さん・佐藤さん）

Interviewers are separated by ``・`` or ``、``; each may carry a trailing
``さん``. All ordinary and full-width spaces are removed from every name.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from interview_sync.normalize import strip_honorific, strip_spaces

TITLE_RE = re.compile(
    r"】(?P<name>[^】]*)さんインタビュー（インタビューアー：(?P<interviewer>[^）]*)さん"
)
ASSOCIATE_SPLIT_RE = re.compile(r"[・、]")


class TitleParseError(ValueError):
    """Raised when a title does not match the interview title pattern."""


@dataclass
class TitleInfo:
    subject_name: str
    associate_names: list[str] = field(default_factory=list)


def parse_title(title: str | None) -> TitleInfo:
    """Parse an interview title into subject and associate names.

    Raises:
        TitleParseError: the title is empty, does not match, or yields an
            empty subject name.
    """
    if not title:
        raise TitleParseError("empty title")

    m = TITLE_RE.search(title)
    if m is None:
        raise TitleParseError(f"title does not match interview pattern: {title!r}")

    subject = strip_spaces(m.group("name")) or ""
    if not subject:
        raise TitleParseError(f"empty interviewee name in title: {title!r}")

    associates: list[str] = []
    for raw in ASSOCIATE_SPLIT_RE.split(m.group("interviewer")):
        name = strip_spaces(strip_honorific(raw)) or ""
        if name:
            associates.append(name)

    return TitleInfo(subject_name=subject, associate_names=associates)
