# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets. Use:
- .env (local, gitignored)
- config_local.py (local safe overrides, gitignored)

This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "MEDIADROP_APP_NAME": "App display name (default: media-drop).",
    "MEDIADROP_LOG_LEVEL": "Console logging level (default: INFO).",
    # HTTP
    "MEDIADROP_HOST": "Bind address (default: 0.0.0.0).",
    "MEDIADROP_PORT": "Listen port (default: 3000). Plain PORT is honoured as a fallback.",
    "MEDIADROP_CORS_ORIGINS": "Comma/space separated allowed origins (default: *).",
    # Delivery policy
    "MEDIADROP_KEEP_FAILED_PAYLOADS": "Keep the file of a task whose delivery failed (true/false, default: false).",
    # Matrix
    "MEDIADROP_MATRIX_ENABLED": "Enable the Matrix channel (true/false). Without it every delivery fails.",
    "MEDIADROP_MATRIX_HOMESERVER": "Matrix homeserver URL.",
    "MEDIADROP_MATRIX_USER_ID": "Matrix user ID (bot).",
    "MEDIADROP_MATRIX_PASSWORD": "Password for first login (session stored locally).",
    "MEDIADROP_MATRIX_ROOMS": "Optional allowlist of room IDs (empty => all joined rooms).",
    "MEDIADROP_MATRIX_RECONNECT_SECONDS": "Delay before reconnecting after a sync failure (min 1, default: 5).",
    # Paths (gitignored)
    "MEDIADROP_DATA_DIR": "Local data directory (default: .local/media-drop).",
    "MEDIADROP_UPLOAD_DIR": "Where uploaded files wait for delivery (default: <data_dir>/uploads).",
    "MEDIADROP_MATRIX_STORE_PATH": "Matrix session and E2EE store path (default: <data_dir>/matrix_store).",
}
