"""Configuration management for Vault Tags.

Handles vault location, journal folder, index storage and search tuning.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from vault_tags.persistence import DEFAULT_MAX_AGE_MS

DEFAULT_DAILY_NOTES_FOLDER = "zzz_Daily Notes"
DEFAULT_SEARCH_THRESHOLD = 0.4
DEFAULT_PREFIX_BYTES = 2048


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default

def _env_float(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default

@dataclass
class Config:
    """Application configuration loaded from environment variables."""

    # Obsidian Vault
    vault_path: Path = field(default_factory=lambda: Path.home())
    daily_notes_folder: str = DEFAULT_DAILY_NOTES_FOLDER

    # Persisted index (defaults to a hidden folder inside the vault)
    index_path: Path | None = None

    # Indexing / search tuning
    search_threshold: float = DEFAULT_SEARCH_THRESHOLD
    prefix_bytes: int = DEFAULT_PREFIX_BYTES
    max_age_ms: int = DEFAULT_MAX_AGE_MS

    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env_path: str | Path | None = None) -> Config:
        """Load configuration from .env file and environment variables."""
        if env_path:
            load_dotenv(env_path)
        else:
            load_dotenv()

        vault_path_str = os.getenv("VAULT_PATH", "")
        vault_path = Path(vault_path_str).expanduser() if vault_path_str else Path.home()

        index_path_str = os.getenv("TAG_INDEX_PATH", "")
        index_path = Path(index_path_str).expanduser() if index_path_str else None

        return cls(
            vault_path=vault_path,
            daily_notes_folder=os.getenv("DAILY_NOTES_FOLDER", DEFAULT_DAILY_NOTES_FOLDER),
            index_path=index_path,
            search_threshold=_env_float("TAG_SEARCH_THRESHOLD", DEFAULT_SEARCH_THRESHOLD),
            prefix_bytes=_env_int("TAG_PREFIX_BYTES", DEFAULT_PREFIX_BYTES),
            max_age_ms=_env_int("TAG_INDEX_MAX_AGE_MS", DEFAULT_MAX_AGE_MS),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )

    @property
    def resolved_index_path(self) -> Path:
        """Location of the persisted index file."""
        if self.index_path is not None:
            return self.index_path
        return self.vault_path / ".vault-tags" / "index.json"
