"""
sqlauth/passwords.py -- Password hashing and verification.

Stored hashes are recognised by prefix:
  $2a$ / $2b$ / $2y$  -- bcrypt, used directly (no passlib wrapper). PHP's
                         password_hash() emits $2y$, which checkpw accepts.
  $argon2i$ / $argon2id$ -- verified with argon2-cffi's PasswordHasher.
Anything else never matches. Both libraries compare in constant time.

bcrypt only reads the first 72 bytes of a password. bcrypt >= 5 raises
ValueError for longer input instead of ignoring the tail, so the encoded
password is cut to 72 bytes before hashing or checking. That matches what
other bcrypt implementations (PHP's included) do with the same hash.

Timing equalization:
  _DUMMY_HASH is computed once at import. When the credential query returns
  no rows, the source still runs one bcrypt check against it so an unknown
  username costs the same as a wrong password and response time does not
  reveal which usernames exist.
"""

from __future__ import annotations

import logging
from typing import Any

import bcrypt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

from sqlauth.errors import AuthenticationFailed

logger = logging.getLogger("sqlauth.passwords")

_BCRYPT_MAX_BYTES = 72
_BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")
_ARGON2_PREFIXES = ("$argon2i$", "$argon2id$")

_argon2 = PasswordHasher()


def _bcrypt_input(plain: str) -> bytes:
    return plain.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    Only the first 72 bytes of the UTF-8 encoding take part.
    """
    return bcrypt.hashpw(_bcrypt_input(plain), bcrypt.gensalt()).decode("utf-8")


def _check_bcrypt(plain: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(_bcrypt_input(plain), hashed.encode("utf-8"))
    except ValueError:
        logger.warning("bcrypt rejected the stored hash")
        return False


def _check_argon2(plain: str, hashed: str) -> bool:
    try:
        return _argon2.verify(hashed, plain)
    except InvalidHashError:
        logger.warning("argon2 rejected the stored hash")
        return False
    except VerificationError:
        return False


def check_password(plain: str, hashed: Any) -> bool:
    """Return True if the plaintext matches the stored bcrypt or argon2 hash.

    A NULL, empty, or unrecognised stored value never matches.
    """
    if isinstance(hashed, (bytes, bytearray, memoryview)):
        hashed = bytes(hashed).decode("utf-8", errors="replace")
    if not isinstance(hashed, str) or not hashed:
        return False
    if hashed.startswith(_BCRYPT_PREFIXES):
        return _check_bcrypt(plain, hashed)
    if hashed.startswith(_ARGON2_PREFIXES):
        return _check_argon2(plain, hashed)
    logger.warning("Stored value is not a bcrypt or argon2 hash")
    return False


_DUMMY_HASH: str = hash_password("sqlauth_timing_dummy")


def burn_verification(plain: str) -> None:
    """Spend one bcrypt check's worth of time. The result is discarded."""
    check_password(plain, _DUMMY_HASH)


def verify(auth_id: str, supplied: str, stored: Any, use_password_verify: bool) -> None:
    """Check the supplied password against the first row's stored value.

    Legacy mode (use_password_verify=False) is a no-op: the query already
    matched the plaintext in its WHERE clause.

    Raises AuthenticationFailed on mismatch. The log says "hash mismatch";
    the exception says nothing beyond the generic message.
    """
    if not use_password_verify:
        return
    if not check_password(supplied, stored):
        logger.error("sqlauth:%s: Hash mismatch. Probably wrong username/password.", auth_id)
        raise AuthenticationFailed()
