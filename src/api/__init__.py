# src/api/__init__.py
# Demo Flask application wired with the event tracker

from .app import create_app

__all__ = [
    "create_app",
]
