"""
auth/passwords.py -- bcrypt password hashing.

Using bcrypt directly rather than passlib[bcrypt] because passlib's internal
wrap-bug detection creates a password longer than 72 bytes, which bcrypt 4.x
rejects with an explicit error.

bcrypt is the right choice for low-entropy secrets (passwords) because its
cost factor makes offline brute force expensive. Every call to hash_password()
generates a fresh salt, so hashing the same password twice yields different
strings; verify_password() reads the salt and cost back out of the stored hash.

Layer rule: no imports from api/ or core/. The cost factor is passed in by the
caller (UserStore receives it from Settings.bcrypt_rounds).
"""

from __future__ import annotations

from functools import lru_cache

import bcrypt

DEFAULT_ROUNDS = 12

# bcrypt only looks at the first 72 bytes of its input. api/models.py rejects
# longer registration passwords so nothing is silently truncated.
MAX_PASSWORD_BYTES = 72


def hash_password(plain: str, rounds: int = DEFAULT_ROUNDS) -> str:
    """Return a salted bcrypt hash of the given plaintext password."""
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    bcrypt.checkpw does the comparison in constant time. A malformed hash or an
    over-long password raises ValueError inside bcrypt; both count as a mismatch.
    """
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


@lru_cache
def dummy_hash(rounds: int = DEFAULT_ROUNDS) -> str:
    """Return a throwaway hash at the given cost, computed once per cost.

    The login flow verifies against this when the email is unknown, so the
    request spends the same bcrypt work as a wrong-password attempt and
    response time does not reveal whether an account exists.
    """
    return hash_password("passgate_timing_dummy", rounds)
