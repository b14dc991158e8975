"""
auth/passwords.py -- bcrypt password hashing with an adjustable work factor.

Security design decisions:
  bcrypt directly (no passlib wrapper). Its cost factor makes brute-force
  expensive and bcrypt.checkpw compares digests in constant time. The salt
  is generated per hash and embedded in the digest, so the store keeps a
  single column.

  Cost is configurable (BCRYPT_ROUNDS). Registration pays it once per user;
  verification pays it on every login, against whatever cost the stored
  digest was created with.

  Timing equalization: each hasher computes a dummy digest at construction.
  AuthService runs dummy_verify() when the email is unknown so response time
  does not reveal whether an account exists.

  bcrypt only looks at the first 72 bytes of a password; bcrypt>=5 refuses
  longer input with ValueError. hash() lets that ValueError propagate (the
  service reports it as an internal error), verify() treats it as a mismatch.
"""

from __future__ import annotations

import bcrypt

DEFAULT_ROUNDS = 12


class PasswordHasher:
    def __init__(self, rounds: int = DEFAULT_ROUNDS) -> None:
        self.rounds = rounds
        self._dummy_hash = bcrypt.hashpw(b"sso_timing_dummy", bcrypt.gensalt(rounds=rounds))

    def hash(self, plain: str) -> bytes:
        """Return a salted bcrypt digest of plain at this hasher's cost."""
        return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=self.rounds))

    def verify(self, plain: str, hashed: bytes) -> bool:
        """Return True if plain matches the bcrypt digest."""
        try:
            return bcrypt.checkpw(plain.encode("utf-8"), hashed)
        except ValueError:
            return False

    def dummy_verify(self, plain: str) -> None:
        """Burn one bcrypt comparison's worth of time. Result is meaningless."""
        self.verify(plain, self._dummy_hash)
