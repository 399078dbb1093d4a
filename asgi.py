"""
asgi.py -- ASGI entry point for ExpenseTracker.

Run with:  uvicorn asgi:app --reload
           python main.py serve --reload
"""

from api.main import app

__all__ = ["app"]
