"""Session tracking for live connections."""

from collabsync.sessions.registry import Session, SessionRegistry

__all__ = ["Session", "SessionRegistry"]
