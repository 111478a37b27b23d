"""
MeteorStack - Read-only meteorite falls API

A FastAPI service that serves a remote meteorite dataset from a single-flight
in-memory cache, with per-caller rate limiting keyed by hashed addresses.
"""

__version__ = "0.1.0"

from .main import app

__all__ = ["app"]
