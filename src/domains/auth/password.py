# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""bcrypt password hashing for academy accounts.

Hashes are produced with the cost factor from ``AUTH_BCRYPT_ROUNDS``. The
coroutine variants push the bcrypt work onto a worker thread, and a missing
hash is still paid for with one comparison against a fixed dummy hash so
that login timing does not reveal whether an account exists.

Example:
    >>> hasher = PasswordHasher(rounds=12)
    >>> stored = await hasher.hash_async("oss-2024")
    >>> await hasher.verify_async("oss-2024", stored)
    True
"""

import asyncio
import logging
from functools import lru_cache

import bcrypt

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes of its input.
BCRYPT_MAX_BYTES = 72


@lru_cache(maxsize=8)
def _dummy_hash(rounds: int) -> bytes:
    return bcrypt.hashpw(b"dummy-password-for-timing", bcrypt.gensalt(rounds=rounds))


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


class PasswordHasher:
    """Salted bcrypt hashes at a fixed cost factor.

    Attributes:
        rounds: bcrypt cost factor used for new hashes.
    """

    def __init__(self, rounds: int = 12) -> None:
        self._rounds = rounds

    @property
    def rounds(self) -> int:
        """Configured bcrypt cost factor."""
        return self._rounds

    def hash(self, password: str) -> str:
        """Hash a password with a fresh salt.

        Raises:
            ValueError: If the password is empty.
        """
        if not password:
            raise ValueError("Password cannot be empty")

        return bcrypt.hashpw(_encode(password), bcrypt.gensalt(rounds=self._rounds)).decode("utf-8")

    def verify(self, password: str, password_hash: str) -> bool:
        """Check a password against a stored hash.

        A malformed stored hash counts as a mismatch.
        """
        if not password or not password_hash:
            return False

        try:
            return bcrypt.checkpw(_encode(password), password_hash.encode("utf-8"))
        except ValueError as e:
            logger.warning("Stored password hash is unreadable: %s", e)
            return False

    def verify_dummy(self, password: str) -> bool:
        """Run a verification against a fixed hash and return False.

        Called when no stored hash exists, so that an unknown account costs
        the same as a wrong password.
        """
        bcrypt.checkpw(_encode(password or "x"), _dummy_hash(self._rounds))
        return False

    def needs_rehash(self, password_hash: str) -> bool:
        """Whether a stored hash was made with another cost factor."""
        if not password_hash:
            return False

        parts = password_hash.split("$")
        if len(parts) < 4 or not parts[2].isdigit():
            return False

        return int(parts[2]) != self._rounds

    async def hash_async(self, password: str) -> str:
        """Hash a password without blocking the event loop."""
        return await asyncio.to_thread(self.hash, password)

    async def verify_async(self, password: str, password_hash: str | None) -> bool:
        """Verify a password without blocking the event loop.

        A missing hash still costs one bcrypt comparison.
        """
        if not password_hash:
            return await asyncio.to_thread(self.verify_dummy, password)
        return await asyncio.to_thread(self.verify, password, password_hash)
