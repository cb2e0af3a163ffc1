"""api/ -- HTTP surface of the ratings service (FastAPI)."""
