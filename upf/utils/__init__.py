"""Logging, settings and platform helpers."""
