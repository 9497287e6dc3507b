"""
Settings loaded from the environment / .env file.

every field can be overridden with a SHEETFORGE_ prefixed variable,
e.g. SHEETFORGE_DATABASE_PATH=analytics.duckdb
"""
from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SHEETFORGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Storage ──────────────────────────────────────────
    database_path: str | None = None  # None means in-memory duckdb
    tables_dir: str = "./tables"

    # ── Compilation ──────────────────────────────────────
    dialect: str = "duckdb"

    # ── App ──────────────────────────────────────────────
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()
