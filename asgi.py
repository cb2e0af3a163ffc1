"""
asgi.py -- ASGI entry point for the ratings service.

api/main.py builds the application; this module is what process managers
point at, so deployment configuration does not depend on the package layout.

Run with:  uvicorn asgi:app --reload
           python main.py
"""

from api.main import app

__all__ = ["app"]
