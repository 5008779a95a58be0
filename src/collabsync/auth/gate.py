"""
Connection gate: bearer-token authentication for real-time connections.

Every connection presents its token once, in the handshake ``auth``
payload. The gate either returns the decoded Identity or raises
AuthenticationError with one of the two documented reasons; nothing is
registered for a refused connection.

Example:
    >>> verifier = JWTTokenVerifier(secret="s3cret")
    >>> gate = ConnectionGate(verifier)
    >>> identity = gate.authenticate({"token": token})
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import timedelta
from typing import Any, Protocol, runtime_checkable

from jose import JWTError, jwt
from pydantic import ValidationError

from collabsync.auth.models import Identity
from collabsync.exceptions import AuthenticationError
from collabsync.types import utc_now

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_LIFETIME = timedelta(hours=24)


@runtime_checkable
class TokenVerifier(Protocol):
    """Verifies a credential string and decodes the identity it carries."""

    def verify(self, token: str) -> Identity:
        """
        Verify a token.

        Raises:
            AuthenticationError: If the token is invalid or expired
        """
        ...


class JWTTokenVerifier:
    """
    Verifies HS256 (or other symmetric) JWTs issued by the REST login.

    Args:
        secret: Shared signing secret
        algorithm: JWT algorithm (default HS256)
    """

    def __init__(self, secret: str, algorithm: str = "HS256") -> None:
        self._secret = secret
        self._algorithm = algorithm

    def verify(self, token: str) -> Identity:
        try:
            claims = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except JWTError as e:
            logger.debug(f"Token verification failed: {e}")
            raise AuthenticationError(AuthenticationError.INVALID_TOKEN) from e

        try:
            return Identity.model_validate(claims)
        except ValidationError as e:
            logger.debug(f"Token claims missing identity fields: {e}")
            raise AuthenticationError(AuthenticationError.INVALID_TOKEN) from e


def create_access_token(
    claims: Identity | Mapping[str, Any],
    secret: str,
    *,
    algorithm: str = "HS256",
    expires_in: timedelta = DEFAULT_TOKEN_LIFETIME,
) -> str:
    """
    Issue a token carrying the same claims as the REST login.

    Args:
        claims: Identity or raw claim mapping
        secret: Signing secret
        algorithm: JWT algorithm
        expires_in: Lifetime; a negative value yields an already-expired token

    Returns:
        Encoded JWT string
    """
    payload = claims.to_claims() if isinstance(claims, Identity) else dict(claims)
    payload["exp"] = utc_now() + expires_in
    return jwt.encode(payload, secret, algorithm=algorithm)


class ConnectionGate:
    """
    Authenticates connection attempts before any handler runs.

    Args:
        verifier: TokenVerifier used to decode credentials
    """

    def __init__(self, verifier: TokenVerifier) -> None:
        self._verifier = verifier

    @staticmethod
    def extract_token(auth: Any) -> str | None:
        """Pull the token out of a handshake auth payload."""
        if not isinstance(auth, Mapping):
            return None
        token = auth.get("token")
        if not isinstance(token, str) or not token.strip():
            return None
        return token.strip()

    def authenticate(self, auth: Any) -> Identity:
        """
        Authenticate a handshake.

        Args:
            auth: Handshake auth payload, normally ``{"token": "..."}``

        Returns:
            The decoded Identity

        Raises:
            AuthenticationError: "No token provided" or "Invalid token"
        """
        token = self.extract_token(auth)
        if token is None:
            raise AuthenticationError(AuthenticationError.NO_TOKEN)
        return self._verifier.verify(token)


__all__ = [
    "TokenVerifier",
    "JWTTokenVerifier",
    "ConnectionGate",
    "create_access_token",
    "DEFAULT_TOKEN_LIFETIME",
]
