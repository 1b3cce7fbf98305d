"""
Password and reset-code hashing.

bcrypt is deliberately slow, so hashing and checking run in a worker
thread to keep the event loop free for other requests.
"""

import asyncio

import bcrypt

# bcrypt only looks at the first 72 bytes of its input
BCRYPT_MAX_BYTES = 72


class PasswordHasher:
    """One-way hashing for passwords and reset codes."""

    def __init__(self, rounds: int = 12):
        self._rounds = rounds

    def _hash_blocking(self, secret: str) -> str:
        return bcrypt.hashpw(
            secret.encode("utf-8"),
            bcrypt.gensalt(rounds=self._rounds),
        ).decode("utf-8")

    def _verify_blocking(self, secret: str, hashed: str) -> bool:
        encoded = secret.encode("utf-8")
        if len(encoded) > BCRYPT_MAX_BYTES:
            return False
        try:
            return bcrypt.checkpw(encoded, hashed.encode("utf-8"))
        except ValueError:
            # Malformed stored hash
            return False

    async def hash(self, secret: str) -> str:
        return await asyncio.to_thread(self._hash_blocking, secret)

    async def verify(self, secret: str, hashed: str) -> bool:
        return await asyncio.to_thread(self._verify_blocking, secret, hashed)
