# src/board_relay/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- Nothing is required at import time; bad values fall back to defaults.
- Source entries live in a separate JSON file (sources_path).
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from .errors import ConfigurationError

ENV_PREFIX = "BOARD_RELAY"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Paths ----
    data_dir: Path
    sources_path: Path

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "board-relay").strip() or "board-relay"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/board-relay"))
        sources_path = _env_path(_k("SOURCES_PATH"), Path("sources.json"))

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            sources_path=sources_path,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Real environment wins over .env.
    load_dotenv(override=False)
    return Settings.from_env()


def load_sources_file(path: str | Path) -> dict[str, Any]:
    """
    Read the sources file.

    Accepts {"sources": [...]} (other top-level keys are kept) or a bare list.
    Only structure is checked here; per-source requirements are checked by the registry.
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text("utf-8"))
    except FileNotFoundError:
        raise ConfigurationError(f"Sources file not found: {path}") from None
    except (OSError, ValueError) as e:
        raise ConfigurationError(f"Cannot read sources file {path}: {e}") from e

    if isinstance(data, list):
        data = {"sources": data}
    if not isinstance(data, Mapping):
        raise ConfigurationError(f"Sources file {path} must contain a JSON object or list")

    sources = data.get("sources", [])
    if not isinstance(sources, list):
        raise ConfigurationError(f"'sources' in {path} must be a list")
    for i, entry in enumerate(sources):
        if not isinstance(entry, Mapping):
            raise ConfigurationError(f"Source #{i} in {path} is not an object")

    return dict(data)
