"""Runtime settings; loads .env locally via python-dotenv."""

from __future__ import annotations

import math
import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

from turbo_loader.packing.wall import SearchBudget


def _optional_float(raw: Optional[str], default: Optional[float]) -> Optional[float]:
    if raw is None:
        return default
    raw = raw.strip()
    if raw == "" or raw.lower() == "none":
        return None
    value = float(raw)
    if not math.isfinite(value) or value <= 0:
        raise ValueError(f"Time limit must be a positive number of seconds, got {raw!r}")
    return value


def _positive_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    value = int(raw)
    if value <= 0:
        raise ValueError(f"{name} must be a positive integer, got {raw!r}")
    return value


def default_workers() -> int:
    return os.cpu_count() or 1


@dataclass(frozen=True)
class Settings:
    wall_time_limit: Optional[float] = 1.0
    wall_max_nodes: int = 50_000
    wall_max_depth: int = 30
    containers_file: Optional[str] = None
    batch_workers: int = field(default_factory=default_workers)
    log_level: str = "INFO"
    log_file: Optional[str] = None

    def search_budget(self) -> SearchBudget:
        return SearchBudget(
            max_depth=self.wall_max_depth,
            max_nodes=self.wall_max_nodes,
            time_limit=self.wall_time_limit,
        )


def get_settings(env_file: Optional[str] = None) -> Settings:
    """
    Read settings from the environment.

    A .env file (the given path, or one found from the working directory)
    is loaded first; it never overrides variables that are already set.

    Raises:
        ValueError: if a numeric variable is malformed or not positive.
    """
    load_dotenv(env_file, override=False)

    return Settings(
        wall_time_limit=_optional_float(os.getenv("TURBO_WALL_TIME_LIMIT"), 1.0),
        wall_max_nodes=_positive_int("TURBO_WALL_MAX_NODES", 50_000),
        wall_max_depth=_positive_int("TURBO_WALL_MAX_DEPTH", 30),
        containers_file=os.getenv("TURBO_CONTAINERS_FILE") or None,
        batch_workers=_positive_int("TURBO_BATCH_WORKERS", default_workers()),
        log_level=(os.getenv("TURBO_LOG_LEVEL") or "INFO").upper(),
        log_file=os.getenv("TURBO_LOG_FILE") or None,
    )
