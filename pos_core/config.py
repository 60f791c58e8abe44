from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

ROOT_DIR = Path(__file__).resolve().parents[1]


def _get_env(*keys: str, default: str | None = None) -> str | None:
    for k in keys:
        v = os.getenv(k)
        if v is not None and str(v).strip() != "":
            return v.strip()
    return default


def _get_bool(*keys: str, default: bool = False) -> bool:
    v = _get_env(*keys, default=None)
    if v is None:
        return default
    return v.lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    base_currency: str
    display_currency: str
    currency_round_up: bool
    card_settlement_currency: str
    seed_path: str
    log_level: str


@lru_cache
def get_settings() -> Settings:
    """Настройки из окружения / .env, читаются один раз"""
    load_dotenv(dotenv_path=ROOT_DIR / ".env")
    base = (_get_env("POS_BASE_CURRENCY", "CURRENCY", default="EUR") or "EUR").upper()
    return Settings(
        base_currency=base,
        display_currency=(_get_env("POS_DISPLAY_CURRENCY", default=base) or base).upper(),
        currency_round_up=_get_bool("POS_CURRENCY_ROUND_UP"),
        card_settlement_currency=(_get_env("POS_CARD_CURRENCY", default="EUR") or "EUR").upper(),
        seed_path=_get_env("POS_SEED_PATH", default=str(ROOT_DIR / "data" / "seed.json")) or "",
        log_level=(_get_env("LOG_LEVEL", default="INFO") or "INFO").upper(),
    )
