"""
Shared environment-driven database configuration helpers.
"""

from __future__ import annotations

import os
from pathlib import Path

ENV_FILENAMES = (".env", ".env.local")
PROJECT_ROOT = Path(__file__).resolve().parents[1]


def _parse_env_line(raw_line: str) -> tuple[str, str] | None:
    line = raw_line.strip()
    if not line or line.startswith("#") or "=" not in line:
        return None
    if line.startswith("export "):
        line = line[len("export ") :].lstrip()

    key, value = line.split("=", 1)
    key = key.strip()
    value = value.strip()
    if value[:1] in {'"', "'"} and value[-1:] == value[:1] and len(value) >= 2:
        value = value[1:-1]
    elif " #" in value:
        value = value.split(" #", 1)[0].rstrip()
    if not key:
        return None
    return key, value


def load_env_files(root: Path | None = None) -> None:
    """
    Load KEY=VALUE pairs from `.env` and `.env.local` under the project root.
    Existing process environment variables are not overwritten.
    """

    base = root or PROJECT_ROOT
    for filename in ENV_FILENAMES:
        env_path = base / filename
        if not env_path.exists():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            parsed = _parse_env_line(raw_line)
            if parsed is None:
                continue
            key, value = parsed
            if key not in os.environ:
                os.environ[key] = value


def normalize_database_url(url: str) -> str:
    """
    Rewrite postgres URLs to the psycopg driver form; other URLs pass through.
    """

    stripped = url.strip()
    if stripped.startswith("postgres://"):
        return stripped.replace("postgres://", "postgresql+psycopg://", 1)
    if stripped.startswith("postgresql://"):
        return stripped.replace("postgresql://", "postgresql+psycopg://", 1)
    return stripped


def resolve_database_url() -> str:
    """
    Resolve the catalog database URL.

    Priority:
    1) DATABASE_URL
    2) LOCAL_DATABASE_URL
    """

    load_env_files()

    for name in ("DATABASE_URL", "LOCAL_DATABASE_URL"):
        value = os.getenv(name)
        if value and value.strip():
            return normalize_database_url(value)

    raise RuntimeError(
        "No database URL configured. Set DATABASE_URL or LOCAL_DATABASE_URL "
        "(for example sqlite:///catalog.db)."
    )
