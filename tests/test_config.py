"""Tests for configuration loading."""

from pathlib import Path

import pytest

from vault_tags.config import (
    DEFAULT_DAILY_NOTES_FOLDER,
    DEFAULT_MAX_AGE_MS,
    DEFAULT_PREFIX_BYTES,
    DEFAULT_SEARCH_THRESHOLD,
    Config,
)

ENV_KEYS = [
    "VAULT_PATH",
    "DAILY_NOTES_FOLDER",
    "TAG_INDEX_PATH",
    "TAG_SEARCH_THRESHOLD",
    "TAG_PREFIX_BYTES",
    "TAG_INDEX_MAX_AGE_MS",
    "LOG_LEVEL",
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for key in ENV_KEYS:
        # setenv first so values loaded from a .env file are undone too
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    return monkeypatch


def test_defaults(clean_env):
    config = Config.from_env()
    assert config.vault_path == Path.home()
    assert config.daily_notes_folder == DEFAULT_DAILY_NOTES_FOLDER
    assert config.search_threshold == DEFAULT_SEARCH_THRESHOLD
    assert config.prefix_bytes == DEFAULT_PREFIX_BYTES
    assert config.max_age_ms == DEFAULT_MAX_AGE_MS
    assert config.resolved_index_path == Path.home() / ".vault-tags" / "index.json"


def test_environment(clean_env, tmp_path):
    clean_env.setenv("VAULT_PATH", str(tmp_path / "vault"))
    clean_env.setenv("TAG_INDEX_PATH", str(tmp_path / "index.json"))
    clean_env.setenv("DAILY_NOTES_FOLDER", "Journal")
    clean_env.setenv("TAG_SEARCH_THRESHOLD", "0.25")
    clean_env.setenv("TAG_PREFIX_BYTES", "4096")
    clean_env.setenv("TAG_INDEX_MAX_AGE_MS", "1000")

    config = Config.from_env()

    assert config.vault_path == tmp_path / "vault"
    assert config.resolved_index_path == tmp_path / "index.json"
    assert config.daily_notes_folder == "Journal"
    assert config.search_threshold == 0.25
    assert config.prefix_bytes == 4096
    assert config.max_age_ms == 1000


def test_invalid_numbers_fall_back(clean_env):
    clean_env.setenv("TAG_PREFIX_BYTES", "lots")
    clean_env.setenv("TAG_SEARCH_THRESHOLD", "fuzzy")

    config = Config.from_env()

    assert config.prefix_bytes == DEFAULT_PREFIX_BYTES
    assert config.search_threshold == DEFAULT_SEARCH_THRESHOLD


def test_env_file(clean_env, tmp_path):
    env_file = tmp_path / "custom.env"
    env_file.write_text("DAILY_NOTES_FOLDER=Diary\n", encoding="utf-8")

    assert Config.from_env(env_file).daily_notes_folder == "Diary"
