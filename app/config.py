"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


@dataclass(frozen=True)
class ImportSettings:
    """
    Runtime settings for the import pipeline.
    """

    max_upload_bytes: int = 20 * 1024 * 1024
    log_validation_errors: bool = True
    error_page_size: int = 50
    max_error_page_size: int = 500
    stale_batch_minutes: int = 120
    sweep_enabled: bool = True


@dataclass(frozen=True)
class PricingSettings:
    """
    Runtime settings for the pricing API.

    max_products_per_request bounds one HTTP resolve call; the engine itself
    runs a fixed number of queries regardless of how many ids it gets.
    """

    max_products_per_request: int = 5000


@lru_cache(maxsize=1)
def get_import_settings() -> ImportSettings:
    """
    Return cached import settings from environment variables.
    """

    return ImportSettings(
        max_upload_bytes=max(1, _get_int_env("IMPORT_MAX_UPLOAD_BYTES", 20 * 1024 * 1024)),
        log_validation_errors=_get_bool_env("IMPORT_LOG_VALIDATION_ERRORS", True),
        error_page_size=max(1, _get_int_env("IMPORT_ERROR_PAGE_SIZE", 50)),
        max_error_page_size=max(1, _get_int_env("IMPORT_MAX_ERROR_PAGE_SIZE", 500)),
        stale_batch_minutes=max(1, _get_int_env("IMPORT_STALE_BATCH_MINUTES", 120)),
        sweep_enabled=_get_bool_env("IMPORT_SWEEP_ENABLED", True),
    )


@lru_cache(maxsize=1)
def get_pricing_settings() -> PricingSettings:
    """
    Return cached pricing settings from environment variables.
    """

    return PricingSettings(
        max_products_per_request=max(1, _get_int_env("PRICING_MAX_PRODUCTS", 5000)),
    )
