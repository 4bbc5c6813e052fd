"""interview_sync.config

Run configuration: credentials and database ids from the environment, and
the property-name mapping (optionally overridden from a YAML file).

Usage:
    settings = SyncSettings.from_env()
    props = load_property_map(Path("config/properties.yml"))
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping

import yaml

DEFAULT_TOKEN_ENV = "NOTION_KEY"
DEFAULT_INTERVIEW_DB_ENV = "INTERVIEW_DATABASE_ID"
DEFAULT_MEMBER_DB_ENV = "MEMBER_DATABASE_ID"


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class ConfigError(ValueError):
    """Raised when a required setting is missing."""


class PropertyMapValidationError(ValueError):
    """Raised when a property-map YAML file fails validation."""


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SyncSettings:
    token: str
    interview_database_id: str
    member_database_id: str

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        token_env: str = DEFAULT_TOKEN_ENV,
        interview_db_env: str = DEFAULT_INTERVIEW_DB_ENV,
        member_db_env: str = DEFAULT_MEMBER_DB_ENV,
    ) -> SyncSettings:
        """Read settings from env vars, naming every missing one in the error."""
        env = os.environ if environ is None else environ
        values = {
            token_env: (env.get(token_env) or "").strip(),
            interview_db_env: (env.get(interview_db_env) or "").strip(),
            member_db_env: (env.get(member_db_env) or "").strip(),
        }
        missing = [name for name, value in values.items() if not value]
        if missing:
            raise ConfigError(f"env vars must be set: {', '.join(missing)}")
        return cls(
            token=values[token_env],
            interview_database_id=values[interview_db_env],
            member_database_id=values[member_db_env],
        )


# ---------------------------------------------------------------------------
# Property names
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PropertyMap:
    """Names of the database properties the sync reads and writes."""

    interview_title: str = "タイトル"
    interviewee: str = "インタビュイー"
    interviewer: str = "インタビュアー"
    video_url: str = "動画URL"
    member_name: str = "Name"


def validate_property_map(data: Any) -> None:
    if data is None:
        return
    if not isinstance(data, dict):
        raise PropertyMapValidationError(
            f"property map must be a mapping, got {type(data).__name__}"
        )
    known = {f.name for f in fields(PropertyMap)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise PropertyMapValidationError(f"unknown property map keys: {unknown}")
    for key, value in data.items():
        if not isinstance(value, str) or not value.strip():
            raise PropertyMapValidationError(f"{key}: must be a non-empty string")


def load_property_map(yaml_path: Path | None) -> PropertyMap:
    """Defaults overlaid with the keys present in ``yaml_path``.

    Raises:
        PropertyMapValidationError: the file is not a mapping of known keys
            to non-empty strings.
        FileNotFoundError: if the YAML file does not exist.
    """
    if yaml_path is None:
        return PropertyMap()
    data = yaml.safe_load(yaml_path.read_text(encoding="utf-8"))
    validate_property_map(data)
    return PropertyMap(**{k: v.strip() for k, v in (data or {}).items()})
