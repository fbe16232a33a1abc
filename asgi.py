"""
asgi.py -- ASGI entry point for Identity Core.

Kept separate from api/main.py so process managers and the CLI `serve`
command have one stable import path that does not change if the API module
is reorganized.

Run with:  uvicorn asgi:app --reload
           identity-core serve
"""

from api.main import app

__all__ = ["app"]
