"""
Environment-driven database configuration for the dealer portal.

The API process, the migration runner and the integrity CLI all resolve
their connection URL here.
"""

from __future__ import annotations

import os
from pathlib import Path

_CLOUD_LIKE_ENVIRONMENTS = frozenset({"prod", "production", "staging", "cloud"})
_ENV_FILES = (".env", ".env.local")

POSTGRES_URL_PREFIXES = ("postgres://", "postgresql://", "postgresql+psycopg://")
DATABASE_URL_VARIABLES = ("DATABASE_URL", "CLOUD_DATABASE_URL", "LOCAL_DATABASE_URL")


def load_env_files() -> None:
    """
    Load KEY=VALUE pairs from the project's env files without overriding
    variables already present in the process environment.
    """

    project_root = Path(__file__).resolve().parents[1]
    for filename in _ENV_FILES:
        env_path = project_root / filename
        if not env_path.is_file():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if line.startswith("export "):
                line = line[len("export "):].lstrip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            if key:
                os.environ.setdefault(key, value)


def is_postgres_url(url: str) -> bool:
    return url.strip().startswith(POSTGRES_URL_PREFIXES)


def normalize_postgres_url(url: str) -> str:
    """
    Rewrite ``postgres://`` and ``postgresql://`` URLs to the psycopg 3
    driver form. Other URLs are returned unchanged.
    """

    url = url.strip()
    for prefix in POSTGRES_URL_PREFIXES[:2]:
        if url.startswith(prefix):
            return "postgresql+psycopg://" + url[len(prefix):]
    return url


def configured_database_url() -> str | None:
    """
    Return the raw URL the portal would connect to, or None.

    Order: DATABASE_URL, CLOUD_DATABASE_URL when ENVIRONMENT is cloud-like,
    then LOCAL_DATABASE_URL.
    """

    load_env_files()

    direct_url = os.getenv("DATABASE_URL", "").strip()
    if direct_url:
        return direct_url

    environment = os.getenv("ENVIRONMENT", "local").strip().lower()
    cloud_url = os.getenv("CLOUD_DATABASE_URL", "").strip()
    if environment in _CLOUD_LIKE_ENVIRONMENTS and cloud_url:
        return cloud_url

    local_url = os.getenv("LOCAL_DATABASE_URL", "").strip()
    return local_url or None


def resolve_database_url() -> str:
    """
    Resolve the portal database URL in SQLAlchemy psycopg form.

    Raises RuntimeError when nothing is configured.
    """

    url = configured_database_url()
    if url is None:
        raise RuntimeError(
            "No database URL configured. Set "
            + ", ".join(DATABASE_URL_VARIABLES[:-1])
            + f" or {DATABASE_URL_VARIABLES[-1]}."
        )
    return normalize_postgres_url(url)
