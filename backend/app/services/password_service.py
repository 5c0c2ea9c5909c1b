"""
Warden API - Password Hashing
===============================

What:  One-way bcrypt hashing and verification of account passwords.
How:   bcrypt with a configurable cost factor and a fresh salt per hash.
Who:   UserService (hash on registration/profile update, verify on login).

bcrypt only reads the first 72 bytes of its input; longer passwords are
rejected upstream by UserService validation rather than silently truncated.
"""

import logging

import bcrypt

from app.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

MIN_ROUNDS = 4
MAX_ROUNDS = 31
MAX_PASSWORD_BYTES = 72


class PasswordHasher:
    """
    bcrypt wrapper with a fixed work factor.

    The work factor is checked once at construction so an invalid value
    fails at startup instead of on the first registration.
    """

    def __init__(self, rounds: int = 10):
        if not MIN_ROUNDS <= rounds <= MAX_ROUNDS:
            raise ConfigurationError(
                f"bcrypt rounds must be between {MIN_ROUNDS} and {MAX_ROUNDS}, got {rounds}"
            )
        self.rounds = rounds

    def hash(self, plaintext: str) -> str:
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(plaintext.encode("utf-8"), salt).decode("utf-8")

    def verify(self, plaintext: str, hashed: str) -> bool:
        """
        Check a plaintext password against a stored hash.

        Returns False for a mismatch and for anything bcrypt cannot process
        (malformed hash, non-string input, over-long password).
        """
        if not isinstance(plaintext, str) or not isinstance(hashed, str):
            return False
        try:
            return bcrypt.checkpw(plaintext.encode("utf-8"), hashed.encode("utf-8"))
        except ValueError:
            logger.debug("Password verification failed on an unusable hash")
            return False
