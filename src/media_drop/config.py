# src/media_drop/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No secrets required at import time (Matrix credentials are only read when the connector starts).
- Plain PORT (as set by most hosting platforms) is honoured as a fallback.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List

ENV_PREFIX = "MEDIADROP"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    """Load .env locally if python-dotenv is installed. Safe no-op otherwise."""
    try:
        from dotenv import load_dotenv  # type: ignore
    except Exception:
        return
    load_dotenv(override=False)


_load_dotenv_if_available()


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    parts = [p.strip() for p in raw.replace(",", " ").split() if p.strip()]
    return parts


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

    # ---- HTTP ----
    host: str
    port: int
    cors_origins: List[str]

    # ---- Delivery policy ----
    keep_failed_payloads: bool

    # ---- Matrix ----
    matrix_enabled: bool
    matrix_homeserver: str
    matrix_user_id: str
    matrix_password: str
    matrix_rooms: List[str]
    matrix_reconnect_seconds: float

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    upload_dir: Path
    matrix_store_path: Path

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "media-drop") or "media-drop"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        host = _env(_k("HOST"), "0.0.0.0")
        port_raw = _first_env(_k("PORT"), "PORT", default="3000") or "3000"
        try:
            port = int(port_raw)
        except ValueError:
            port = 3000
        cors_origins = _env_list(_k("CORS_ORIGINS"), ["*"])

        keep_failed_payloads = _env_bool(_k("KEEP_FAILED_PAYLOADS"), False)

        matrix_enabled = _env_bool(_k("MATRIX_ENABLED"), _env_bool("MATRIX_ENABLED", False))
        matrix_homeserver = (_first_env(_k("MATRIX_HOMESERVER"), "MATRIX_HOMESERVER", default="") or "").strip()
        matrix_user_id = (_first_env(_k("MATRIX_USER_ID"), "MATRIX_USER_ID", default="") or "").strip()
        matrix_password = (_first_env(_k("MATRIX_PASSWORD"), "MATRIX_PASSWORD", default="") or "").strip()
        matrix_rooms = _env_list(_k("MATRIX_ROOMS"), _env_list("MATRIX_ROOMS", []))
        matrix_reconnect_seconds = max(1.0, _env_float(_k("MATRIX_RECONNECT_SECONDS"), 5.0))

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/media-drop"))
        upload_dir = _env_path(_k("UPLOAD_DIR"), data_dir / "uploads")
        matrix_store_path = _env_path(_k("MATRIX_STORE_PATH"), data_dir / "matrix_store")

        return Settings(
            app_name=app_name,
            log_level=log_level,
            host=host,
            port=port,
            cors_origins=cors_origins,
            keep_failed_payloads=keep_failed_payloads,
            matrix_enabled=matrix_enabled,
            matrix_homeserver=matrix_homeserver,
            matrix_user_id=matrix_user_id,
            matrix_password=matrix_password,
            matrix_rooms=matrix_rooms,
            matrix_reconnect_seconds=matrix_reconnect_seconds,
            data_dir=data_dir,
            upload_dir=upload_dir,
            matrix_store_path=matrix_store_path,
        )


SETTINGS = Settings.from_env()

# ---- Optional local overrides (never committed) ----
# Prefer .env for secrets; use config_local.py only for safe overrides.
_LOCAL_OVERRIDES: dict[str, type] = {
    "MATRIX_ENABLED": bool,
    "KEEP_FAILED_PAYLOADS": bool,
    "PORT": int,
}

try:
    import config_local as _config_local  # type: ignore
except ImportError:
    _config_local = None

if _config_local is not None:
    for _name, _cast in _LOCAL_OVERRIDES.items():
        if hasattr(_config_local, _name):
            object.__setattr__(SETTINGS, _name.lower(), _cast(getattr(_config_local, _name)))  # type: ignore[misc]


def get_settings() -> Settings:
    return SETTINGS

