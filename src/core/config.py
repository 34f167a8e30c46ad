"""Core configuration.

- Centralizes environment variables (pydantic-settings) away from the CLI.
- Adapters (HTTP, database) and the web app read the same `AppSettings`.
- The upstream token is never part of the settings: it comes from the caller.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_user_config_dir() -> Path:
    """Per-user configuration directory (cross-platform, no extra dependencies)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "verceipts"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "verceipts"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "verceipts"
    return Path.home() / ".config" / "verceipts"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


def _parse_env_lines(text: str) -> dict[str, str]:
    data: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key:
            data[key] = value
    return data


def write_user_env_vars(values: dict[str, str]) -> Path:
    """Write or update variables in the user's global .env file."""

    env_path = get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, str] = {}
    if env_path.exists():
        existing = _parse_env_lines(env_path.read_text(encoding="utf-8"))

    existing.update({k: v for k, v in values.items() if v is not None})

    lines = ["# Verceipts user config (.env)"]
    for key in sorted(existing.keys()):
        lines.append(f"{key}={existing[key]}")
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return env_path


class AppSettings(BaseSettings):
    """Application settings.

    Sources, in order: process environment, project `.env`, user `.env`.
    """

    model_config = SettingsConfigDict(
        env_prefix="VERCEIPTS_",
        extra="ignore",
        case_sensitive=False,
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    api_base_url: str = Field(
        default="https://api.vercel.com",
        min_length=8,
        description="Base URL of the deployment platform REST API.",
    )
    http_timeout_seconds: float = Field(
        default=20.0,
        gt=0,
        description="Per-request timeout (seconds).",
    )
    user_agent: str = Field(
        default="verceipts/0.1 (+https://verceipts.vercel.app)",
        min_length=1,
        description="User-Agent sent to the upstream API.",
    )

    deployments_page_size: int = Field(
        default=100,
        ge=1,
        le=100,
        description="Page size requested from the deployments listing.",
    )
    enrichment_max_concurrency: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Maximum number of projects enriched at the same time.",
    )
    partial_enrichment: bool = Field(
        default=False,
        description=(
            "Keep projects whose deployments could not be fetched (with zero "
            "deployments) instead of failing the whole aggregation."
        ),
    )

    database_url: str = Field(
        default="sqlite+aiosqlite:///./verceipts.db",
        min_length=1,
        description="SQLAlchemy async URL for the leaderboard store.",
    )
    database_echo: bool = Field(
        default=False,
        description="Echo SQL statements (debugging).",
    )
    leaderboard_limit: int = Field(
        default=100,
        ge=1,
        le=1000,
        description="Number of rows returned by the leaderboard.",
    )

    log_level: str = Field(
        default="INFO",
        description="Root log level.",
    )
    log_format: Literal["text", "json"] = Field(
        default="text",
        description="`text` (rich console) or `json` (one object per line).",
    )
