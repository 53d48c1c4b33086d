"""Shared testing fixtures for the quiz_console test suite."""

from .channel import ScriptedChannel  # noqa: F401
from .store import sqlite_url, temporary_store  # noqa: F401

__all__ = [
    "ScriptedChannel",
    "sqlite_url",
    "temporary_store",
]
