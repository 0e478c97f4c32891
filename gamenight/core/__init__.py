"""Event scheduling and per-participant progression.

Kept free of FastAPI and Redis concerns; the store is reached through a small protocol.
"""
