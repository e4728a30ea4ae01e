"""Configuration loading for the userboard service."""
from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, Mapping, Optional

import yaml

from .database import resolve_database_path

ENV_PREFIX = "USERBOARD_"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _parse_flag(value: object, *, field: str) -> bool:
    if isinstance(value, bool):
        return value
    lowered = str(value).strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Invalid boolean value for {field}: {value!r}")


def _parse_seconds(value: object, *, field: str) -> float:
    try:
        seconds = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid number of seconds for {field}: {value!r}") from exc
    if seconds < 0:
        raise ValueError(f"{field} must not be negative")
    return seconds


def _resolve_path(raw: str, base_path: Optional[Path]) -> Path:
    candidate = Path(raw).expanduser()
    if not candidate.is_absolute() and base_path is not None:
        candidate = base_path / candidate
    return candidate.resolve(strict=False)


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the web application and CLI."""

    database_path: Path
    session_secret: Optional[str] = None
    list_revalidate: float = 0.0
    service_url: Optional[str] = None
    session_secure: bool = False

    @staticmethod
    def from_dict(data: Mapping[str, object], base_path: Path | None = None) -> "Settings":
        """Create :class:`Settings` from raw dictionary data."""

        raw_db_path = data.get("database_path")
        if raw_db_path:
            database_path = _resolve_path(str(raw_db_path), base_path)
        else:
            database_path = resolve_database_path(None)

        secret = data.get("session_secret")
        raw_service_url = str(data.get("service_url") or "").strip().rstrip("/")

        return Settings(
            database_path=database_path,
            session_secret=str(secret) if secret else None,
            list_revalidate=_parse_seconds(data.get("list_revalidate", 0), field="list_revalidate"),
            service_url=raw_service_url or None,
            session_secure=_parse_flag(data.get("session_secure", False), field="session_secure"),
        )

    def with_env(self, env: Mapping[str, str]) -> "Settings":
        """Return a copy with ``USERBOARD_*`` environment overrides applied."""

        changes: Dict[str, object] = {}
        db_path = env.get(f"{ENV_PREFIX}DB_PATH")
        if db_path:
            changes["database_path"] = resolve_database_path(db_path)
        secret = env.get(f"{ENV_PREFIX}SESSION_SECRET")
        if secret:
            changes["session_secret"] = secret
        revalidate = env.get(f"{ENV_PREFIX}LIST_REVALIDATE")
        if revalidate:
            changes["list_revalidate"] = _parse_seconds(revalidate, field=f"{ENV_PREFIX}LIST_REVALIDATE")
        service_url = env.get(f"{ENV_PREFIX}SERVICE_URL")
        if service_url and service_url.strip():
            changes["service_url"] = service_url.strip().rstrip("/")
        secure = env.get(f"{ENV_PREFIX}SESSION_SECURE")
        if secure:
            changes["session_secure"] = _parse_flag(secure, field=f"{ENV_PREFIX}SESSION_SECURE")
        return replace(self, **changes) if changes else self


def resolve_config_path(env_value: Optional[str]) -> Path:
    """Resolve the path to the configuration file."""
    if env_value:
        candidate = Path(env_value).expanduser().resolve(strict=False)
    else:
        candidate = (Path(__file__).resolve().parent.parent / "config" / "userboard.yaml").resolve(strict=False)
    return candidate


def load_settings(
    config_path: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Load settings from the YAML file (if any) and the environment."""

    if env is None:
        env = os.environ
    if config_path is None:
        config_path = resolve_config_path(env.get(f"{ENV_PREFIX}CONFIG"))

    raw: Mapping[str, object] = {}
    if config_path.exists():
        with config_path.open("r", encoding="utf-8") as handle:
            loaded = yaml.safe_load(handle) or {}
        if not isinstance(loaded, dict):
            raise ValueError(f"Configuration file {config_path} must contain a mapping")
        raw = loaded

    settings = Settings.from_dict(raw, base_path=config_path.parent)
    return settings.with_env(env)


__all__ = ["ENV_PREFIX", "Settings", "load_settings", "resolve_config_path"]
