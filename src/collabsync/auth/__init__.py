"""
Connection authentication for collabsync.

Example:
    >>> from collabsync.auth import ConnectionGate, JWTTokenVerifier
    >>>
    >>> gate = ConnectionGate(JWTTokenVerifier(secret=settings.jwt_secret))
    >>> identity = gate.authenticate(handshake_auth)
"""

from collabsync.auth.gate import (
    DEFAULT_TOKEN_LIFETIME,
    ConnectionGate,
    JWTTokenVerifier,
    TokenVerifier,
    create_access_token,
)
from collabsync.auth.models import Identity

__all__ = [
    "ConnectionGate",
    "DEFAULT_TOKEN_LIFETIME",
    "Identity",
    "JWTTokenVerifier",
    "TokenVerifier",
    "create_access_token",
]
