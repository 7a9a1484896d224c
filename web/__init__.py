"""
Web application package for chess rooms.

Provides the FastAPI app: a WebSocket endpoint carrying room actions and
events, and a REST room list. Run with ``python -m web.app`` or point
uvicorn at ``web.app:app``.
"""
