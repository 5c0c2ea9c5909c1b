"""
Warden API - Access Token Service
===================================

What:  Issues and verifies signed, time-bound access tokens (JWT, HS256).
How:   PyJWT signs {sub, iat, exp} with the server secret. Verification
       checks the signature and required claims with PyJWT, then compares
       `exp` against the service clock.
Who:   UserService (issue on registration/login), `protect` (verify).

Token states:
    issued → valid (now < exp) → expired (now >= exp)
    There is no revoked state: a leaked token stays valid until it expires.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable

import jwt

from app.exceptions import ConfigurationError, InvalidTokenError

logger = logging.getLogger(__name__)

# 7 days
DEFAULT_LIFETIME_SECONDS = 60 * 60 * 24 * 7


@dataclass(frozen=True)
class TokenClaims:
    """Verified claims of an access token."""

    subject: str
    issued_at: int
    expires_at: int

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class TokenService:
    """
    Stateless JWT issuer/verifier.

    Args:
        secret:           HMAC signing secret (required)
        algorithm:        HS256, HS384 or HS512
        lifetime_seconds: exp - iat for issued tokens
        clock:            returns the current epoch time in seconds
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        lifetime_seconds: int = DEFAULT_LIFETIME_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        if not secret:
            raise ConfigurationError("A token signing secret is required")
        self._secret = secret
        self.algorithm = algorithm
        self.lifetime_seconds = lifetime_seconds
        self.clock = clock

    def issue(self, subject_id: str) -> str:
        now = int(self.clock())
        payload = {
            "sub": str(subject_id),
            "iat": now,
            "exp": now + self.lifetime_seconds,
        }
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenClaims:
        """
        Validate a token and return its claims.

        Raises:
            InvalidTokenError: for every kind of failure, with one message.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options={
                    "require": ["sub", "iat", "exp"],
                    # expiry is checked below against self.clock
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
        except jwt.PyJWTError as e:
            logger.debug("Token rejected: %s", type(e).__name__)
            raise InvalidTokenError(context={"reason": type(e).__name__}) from None

        subject = payload.get("sub")
        issued_at = payload.get("iat")
        expires_at = payload.get("exp")
        if not isinstance(subject, str) or not subject:
            logger.debug("Token rejected: missing subject")
            raise InvalidTokenError(context={"reason": "missing_subject"})
        if not isinstance(expires_at, (int, float)) or not isinstance(issued_at, (int, float)):
            logger.debug("Token rejected: non-numeric time claims")
            raise InvalidTokenError(context={"reason": "malformed_claims"})

        claims = TokenClaims(
            subject=subject,
            issued_at=int(issued_at),
            expires_at=int(expires_at),
        )
        if claims.is_expired(self.clock()):
            logger.debug("Token rejected: expired")
            raise InvalidTokenError(context={"reason": "expired"})
        return claims
