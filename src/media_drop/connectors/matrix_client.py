# src/media_drop/connectors/matrix_client.py

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from nio import AsyncClient, AsyncClientConfig, LoginResponse

logger = logging.getLogger(__name__)

try:
    import olm  # type: ignore  # noqa: F401

    OLM_AVAILABLE = True
except ImportError:
    OLM_AVAILABLE = False

SESSION_FILE = "session.json"


def _read_session(path: Path) -> dict[str, str]:
    data = json.loads(path.read_text("utf-8"))
    if not isinstance(data, dict):
        raise ValueError("Expected JSON object")
    missing = [k for k in ("access_token", "user_id", "device_id") if not data.get(k)]
    if missing:
        raise ValueError(f"{path.name} is missing {', '.join(missing)}")
    return {k: str(data[k]) for k in ("access_token", "user_id", "device_id")}


def _write_session(path: Path, data: dict[str, Any]) -> None:
    tmp = path.with_suffix(".tmp")
    tmp.write_text(json.dumps(data, ensure_ascii=False), "utf-8")
    os.replace(tmp, path)
    try:
        # Holds an access token.
        os.chmod(path, 0o600)
    except OSError:
        logger.debug("chmod 600 failed for %s", path, exc_info=True)


async def create_matrix_client(settings) -> AsyncClient | None:
    """
    Build a logged-in Matrix AsyncClient, or None if that is impossible.

    The access token/device id are kept in <matrix_store_path>/session.json so restarts and
    reconnects reuse the same device instead of logging in again. The password is only needed
    once, to bootstrap that file.
    """
    homeserver = (getattr(settings, "matrix_homeserver", "") or "").strip()
    user_id = (getattr(settings, "matrix_user_id", "") or "").strip()
    password = (getattr(settings, "matrix_password", "") or "").strip()
    store_dir = Path(getattr(settings, "matrix_store_path", Path(".local/media-drop/matrix_store")))

    if not homeserver or not user_id:
        logger.error("Matrix is not configured: set MEDIADROP_MATRIX_HOMESERVER and MEDIADROP_MATRIX_USER_ID")
        return None

    store_dir.mkdir(parents=True, exist_ok=True)
    session_file = store_dir / SESSION_FILE

    if OLM_AVAILABLE:
        logger.info("python-olm detected: uploads to encrypted rooms will be encrypted")
    else:
        logger.warning("python-olm not installed: encrypted rooms cannot receive media")

    client = AsyncClient(
        homeserver,
        user_id,
        store_path=str(store_dir) if OLM_AVAILABLE else None,
        config=AsyncClientConfig(encryption_enabled=OLM_AVAILABLE, store_sync_tokens=True),
    )

    if session_file.exists():
        try:
            session = _read_session(session_file)
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable %s, falling back to password login: %r", session_file, e)
        else:
            client.access_token = session["access_token"]
            client.user_id = session["user_id"]
            client.device_id = session["device_id"]
            if OLM_AVAILABLE:
                try:
                    client.load_store()
                except Exception as e:
                    logger.warning("Failed to load E2EE store: %r", e)
            logger.info("Matrix session restored for %s (device %s)", client.user_id, client.device_id)
            return client

    if not password:
        logger.error(
            "No Matrix session.json and no password set. "
            "Set MEDIADROP_MATRIX_PASSWORD once to bootstrap a session."
        )
        await client.close()
        return None

    device_name = f"{getattr(settings, 'app_name', 'media-drop')} (Python)"
    logger.info("Logging in to Matrix as %s (device_name=%r)...", user_id, device_name)
    resp = await client.login(password=password, device_name=device_name)
    if not isinstance(resp, LoginResponse):
        logger.error("Matrix login failed: %r", resp)
        await client.close()
        return None

    try:
        _write_session(
            session_file,
            {"access_token": resp.access_token, "user_id": resp.user_id, "device_id": resp.device_id},
        )
        logger.info("Matrix session saved to %s", session_file)
    except OSError:
        # The client is logged in; only the next restart pays for this.
        logger.exception("Failed to write %s", session_file)

    return client
