"""HTTP surface of the talking-points engine (FastAPI)."""
