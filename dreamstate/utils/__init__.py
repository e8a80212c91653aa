"""Utility helpers (logging)."""
