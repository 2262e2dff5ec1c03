"""Settings loader for the notes service."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_DATA_DIR = Path(__file__).resolve().parents[2] / "data"


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    appwrite_endpoint: str | None
    appwrite_project_id: str | None
    appwrite_db_id: str | None
    appwrite_collection_id: str | None
    appwrite_api_key: str | None
    appwrite_timeout_s: float
    notes_page_size: int
    notes_cache_max_owners: int
    log_level: str
    frontend_origin: str

    @property
    def remote_configured(self) -> bool:
        return bool(
            self.appwrite_endpoint
            and self.appwrite_project_id
            and self.appwrite_db_id
            and self.appwrite_collection_id
        )


def _parse_int(value: str, name: str) -> int:
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"Invalid integer for {name}: {value}") from exc


def _parse_float(value: str, name: str) -> float:
    try:
        return float(value)
    except ValueError as exc:
        raise ValueError(f"Invalid number for {name}: {value}") from exc


def _optional(name: str) -> str | None:
    value = os.environ.get(name, "").strip()
    return value or None


def load_settings() -> Settings:
    return Settings(
        data_dir=Path(os.environ.get("APP_DATA_DIR", str(DEFAULT_DATA_DIR))).expanduser(),
        appwrite_endpoint=_optional("APPWRITE_ENDPOINT"),
        appwrite_project_id=_optional("APPWRITE_PROJECT_ID"),
        appwrite_db_id=_optional("APPWRITE_DB_ID"),
        appwrite_collection_id=_optional("APPWRITE_COLLECTION_ID"),
        appwrite_api_key=_optional("APPWRITE_API_KEY"),
        appwrite_timeout_s=_parse_float(os.environ.get("APPWRITE_TIMEOUT_S", "10"), "APPWRITE_TIMEOUT_S"),
        notes_page_size=_parse_int(os.environ.get("NOTES_PAGE_SIZE", "100"), "NOTES_PAGE_SIZE"),
        notes_cache_max_owners=max(1, _parse_int(os.environ.get("NOTES_CACHE_MAX_OWNERS", "256"), "NOTES_CACHE_MAX_OWNERS")),
        log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        frontend_origin=os.environ.get("FRONTEND_ORIGIN", "http://localhost:5173"),
    )
