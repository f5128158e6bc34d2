from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

import yaml


DEFAULT_CONFIG_PATH = Path("configs/config.yaml")


@lru_cache()
def load_config() -> dict:
    """Load configs/config.yaml (or $NUTRITION_CONFIG) and apply env overrides."""
    cfg_path = Path(os.getenv("NUTRITION_CONFIG", str(DEFAULT_CONFIG_PATH)))
    if not cfg_path.exists():
        raise FileNotFoundError(f"{cfg_path} not found")
    with cfg_path.open("r", encoding="utf-8") as f:
        cfg = yaml.safe_load(f) or {}

    db_url = os.getenv("DATABASE_URL")
    if db_url:
        # Hosted Postgres hands out postgres:// but SQLAlchemy wants postgresql://
        if db_url.startswith("postgres://"):
            db_url = db_url.replace("postgres://", "postgresql://", 1)
        cfg.setdefault("database", {})["url"] = db_url

    level = os.getenv("LOG_LEVEL")
    if level:
        cfg.setdefault("logging", {})["level"] = level

    return cfg
