"""Application configuration objects and helpers."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    """Interpret environment variable values as booleans."""

    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {value!r}") from None


class BaseConfig:
    """Base configuration shared across environments."""

    APP_NAME = "TrueBalance"
    DB_FILENAME = "truebalance.db"

    def __init__(self, data_dir: Path | str | None = None) -> None:
        self.SECRET_KEY = os.getenv("TRUEBALANCE_SECRET_KEY", "replace-me")
        self.DATA_DIR = self._resolve_data_dir(data_dir)
        self.DEV_MODE = _env_bool("TRUEBALANCE_DEV_MODE", default=True)
        self.DATABASE_URL = os.getenv("TRUEBALANCE_DATABASE_URL", self._build_sqlite_url())
        self.DEFAULT_BUDGET = _env_float("TRUEBALANCE_DEFAULT_BUDGET", 500.0)
        self.DEFAULT_STRATEGY = os.getenv(
            "TRUEBALANCE_DEFAULT_STRATEGY", "SNOWBALL_LOWEST_BALANCE"
        )
        if not self.DEV_MODE and self.SECRET_KEY == "replace-me":
            raise ValueError("TRUEBALANCE_SECRET_KEY must be set in non-dev mode.")

    def _resolve_data_dir(self, data_dir: Path | str | None = None) -> Path:
        """Return the directory where the SQLite file and logs live.

        An explicit ``data_dir`` wins over ``TRUEBALANCE_DATA_DIR``.
        """

        data_root = data_dir if data_dir is not None else os.getenv("TRUEBALANCE_DATA_DIR", "instance")
        base_path = Path(data_root).expanduser()
        try:
            path = base_path.resolve()
            path.mkdir(parents=True, exist_ok=True)
            return path
        except PermissionError:
            # Protected install locations fall back to per-user storage.
            fallback_path = Path.home() / f".{self.APP_NAME.lower()}"
            fallback_path.mkdir(parents=True, exist_ok=True)
            return fallback_path.resolve()

    def _build_sqlite_url(self) -> str:
        db_path = self.DATA_DIR / self.DB_FILENAME
        return f"sqlite:///{db_path}"

    def sqlalchemy_engine_options(self) -> dict[str, Any]:
        """Expose engine kwargs for SQLModel to consume."""

        connect_args: dict[str, Any] = {}
        if self.DATABASE_URL.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        return {"connect_args": connect_args}


class DevConfig(BaseConfig):
    """Development configuration using local SQLite."""

    DEBUG = True
    TESTING = False


class TestConfig(BaseConfig):
    """Configuration for test runs; data dir and database are set by the caller."""

    DEBUG = False
    TESTING = True
