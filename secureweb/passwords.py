# secureweb/passwords.py

"""Password hashing helpers backed by bcrypt."""

import logging

import bcrypt

logger = logging.getLogger(__name__)


def hash_password(password: str, rounds: int = 12) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password: Plain text password to hash.
        rounds: bcrypt work factor (log2 of the iteration count).

    Returns:
        str: The bcrypt hash, including salt and cost.
    """
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("ascii")


def verify_password(password: str, hashed_password: str | None) -> bool:
    """
    Verify a password against its hash in constant time.

    Returns False, rather than raising, for a missing or malformed hash and
    for passwords bcrypt refuses to process.
    """
    if not hashed_password:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed_password.encode("ascii"))
    except (ValueError, UnicodeEncodeError):
        logger.warning("password verification rejected input")
        return False


# Used when the username is unknown, so both branches cost one bcrypt check.
_DUMMY_HASH_CACHE: dict[int, str] = {}


def dummy_hash(rounds: int = 12) -> str:
    if rounds not in _DUMMY_HASH_CACHE:
        _DUMMY_HASH_CACHE[rounds] = hash_password("not-a-real-password", rounds)
    return _DUMMY_HASH_CACHE[rounds]
