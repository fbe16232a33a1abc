"""
auth/passwords.py -- Password hashing and verification.

Security design decisions:
  Passwords: bcrypt directly (no passlib wrapper). Bcrypt is the right choice
       for low-entropy secrets because its cost factor makes brute-force
       expensive. gensalt() draws a fresh random salt on every call, so the
       same password never produces the same digest twice.

  Comparison: bcrypt.checkpw() recomputes the digest from the stored salt and
       compares in constant time. Never compare digests with ==.

  Timing equalization: _DUMMY_HASH lets the sign-in path run a full bcrypt
       check even when the username does not exist, so response time does not
       reveal which gate rejected the attempt.

Layer rule: no imports from api/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging

import bcrypt

from core.config import get_settings
from core.errors import ValidationFailedError

logger = logging.getLogger("identitycore.auth")

# bcrypt only looks at the first 72 bytes of input. bcrypt >= 5 raises instead
# of truncating, so every password is capped at this many bytes before hashing.
MAX_PASSWORD_BYTES = 72


def hash_password(plain: str) -> str:
    """Return a bcrypt digest of the plaintext password, salted fresh.

    Raises ValidationFailedError if the password exceeds MAX_PASSWORD_BYTES
    once encoded as UTF-8.
    """
    if len(plain.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationFailedError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    salt = bcrypt.gensalt(rounds=get_settings().bcrypt_rounds)
    return bcrypt.hashpw(plain.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain: str, digest: str) -> bool:
    """Return True if the plaintext password matches the bcrypt digest.

    A malformed digest or an over-long password counts as a mismatch.
    """
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), digest.encode("utf-8"))
    except ValueError:
        logger.warning("Password check failed on malformed input")
        return False


# Computed once at module load so the first unknown-username attempt is not
# measurably slower than later ones.
_DUMMY_HASH: str = hash_password("identitycore_timing_dummy")


def burn_verification(plain: str) -> None:
    """Run a throwaway bcrypt check against the dummy digest.

    Called on sign-in paths that reject before touching a real digest.
    """
    verify_password(plain, _DUMMY_HASH)
