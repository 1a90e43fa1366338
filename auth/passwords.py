"""
auth/passwords.py -- One-way password hashing with bcrypt.

Security design decisions:
  bcrypt is used directly (no passlib wrapper). Its output is self-describing:
  "$2b$10$<22-char salt><31-char digest>" carries the algorithm, cost factor
  and salt, so verify() needs nothing but the stored string, and the cost can
  be raised later without breaking existing hashes.

  Cost factor is fixed at BCRYPT_ROUNDS, not configurable. Ten rounds keeps a
  single verification in the tens of milliseconds.

  bcrypt only reads the first 72 bytes of its input, and newer releases raise
  instead of truncating. Both hash() and verify() cut the UTF-8 encoding to 72
  bytes themselves so behaviour is identical across bcrypt versions.

  bcrypt.checkpw() compares digests with hmac.compare_digest, so a mismatch
  takes the same time wherever it occurs.

Nothing in this module logs or echoes its inputs.

Layer rule: stdlib + bcrypt only.
"""

from __future__ import annotations

import bcrypt

BCRYPT_ROUNDS = 10
_BCRYPT_MAX_BYTES = 72


def _encode(plain: str) -> bytes:
    return plain.encode("utf-8")[:_BCRYPT_MAX_BYTES]


class PasswordHasher:
    """Salted bcrypt hashing with constant-time verification.

    Usage:
        hasher = PasswordHasher()
        stored = hasher.hash("correct horse")
        hasher.verify("correct horse", stored)  # True
    """

    def __init__(self, rounds: int = BCRYPT_ROUNDS) -> None:
        self.rounds = rounds
        # Timing equalization: unknown-email logins verify against this so they
        # cost the same as a wrong-password login.
        self._dummy_hash = self.hash("bikehub_timing_dummy")

    def hash(self, plain: str) -> str:
        """Return a bcrypt hash of plain with a fresh random salt."""
        if not plain:
            raise ValueError("Cannot hash an empty value.")
        return bcrypt.hashpw(_encode(plain), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plain: str, hashed: str) -> bool:
        """Return True if plain matches hashed. Malformed hashes return False."""
        try:
            return bcrypt.checkpw(_encode(plain), hashed.encode("utf-8"))
        except (ValueError, TypeError, AttributeError):
            return False

    def dummy_verify(self, plain: str) -> None:
        """Burn one verification's worth of work. Result is discarded."""
        self.verify(plain, self._dummy_hash)

    def needs_rehash(self, hashed: str) -> bool:
        """True when hashed was produced with fewer rounds than the current cost.

        Format: $<ident>$<cost>$<salt+digest>. Unparseable input is treated as
        needing a rehash.
        """
        parts = hashed.split("$")
        if len(parts) != 4:
            return True
        try:
            return int(parts[2]) < self.rounds
        except ValueError:
            return True
