"""Ports, errors and application state shared by every layer."""
