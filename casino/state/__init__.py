"""Session state module."""
from .session_store import Session, SessionStore

__all__ = ["Session", "SessionStore"]
