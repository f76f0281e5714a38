# config_local.example.py

"""
Example local overrides.

Usage:
  1) Copy this file to `config_local.py`
  2) Adjust values for your machine
  3) Never commit `config_local.py` (it is gitignored)

Prefer `.env` for secrets. This file should contain only safe overrides.
Supported names: MATRIX_ENABLED, KEEP_FAILED_PAYLOADS, PORT.
"""

# Example: enable Matrix connector locally
# MATRIX_ENABLED = True

# Example: keep files of failed deliveries for inspection
# KEEP_FAILED_PAYLOADS = True

# Example: listen on another port
# PORT = 8080
