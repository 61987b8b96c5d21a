"""
Session identity for request handlers.

The signed cookie session is managed by Starlette's ``SessionMiddleware``;
this module only mints and reads the opaque id stored inside it.
"""

from uuid import uuid4

from fastapi import Request

SESSION_ID_KEY = "session_id"


def get_session_id(request: Request) -> str:
    """FastAPI dependency returning the caller's session id, creating one if absent."""
    session_id = request.session.get(SESSION_ID_KEY)
    if not session_id:
        session_id = uuid4().hex
        request.session[SESSION_ID_KEY] = session_id
    return session_id


def invalidate_session(request: Request) -> None:
    """Drop everything held in the caller's session cookie."""
    request.session.clear()


__all__ = ["SESSION_ID_KEY", "get_session_id", "invalidate_session"]
