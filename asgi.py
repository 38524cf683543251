"""
asgi.py -- ASGI entry point for passgate.

Run with:  uvicorn asgi:app --reload
           python main.py serve

Kept separate from api/main.py so process managers and the CLI point at one
stable import path regardless of how the api/ package is organised.
"""

from api.main import app

__all__ = ["app"]
