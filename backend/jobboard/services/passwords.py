"""
Password Hashing - bcrypt behind a small async interface

bcrypt is deliberately slow, so hashing and checking run in the default
executor to keep the event loop free.
"""

import asyncio
import logging
from abc import ABC, abstractmethod

import bcrypt

from jobboard.errors import InvalidArgumentError

logger = logging.getLogger(__name__)


class PasswordHasher(ABC):
    """Opaque one-way password hashing."""

    @abstractmethod
    async def hash(self, plaintext: str) -> str:
        pass

    @abstractmethod
    async def verify(self, plaintext: str, hashed: str) -> bool:
        pass


class BcryptPasswordHasher(PasswordHasher):
    def __init__(self, rounds: int = 12):
        self.rounds = rounds

    async def hash(self, plaintext: str) -> str:
        if not plaintext or not isinstance(plaintext, str):
            raise InvalidArgumentError("Password must be a non-empty string")

        # bcrypt embeds the salt in the hash
        loop = asyncio.get_event_loop()
        hashed = await loop.run_in_executor(
            None, lambda: bcrypt.hashpw(plaintext.encode(), bcrypt.gensalt(self.rounds))
        )
        return hashed.decode()

    async def verify(self, plaintext: str, hashed: str) -> bool:
        if not plaintext or not hashed:
            return False

        loop = asyncio.get_event_loop()
        try:
            return await loop.run_in_executor(
                None, lambda: bcrypt.checkpw(plaintext.encode(), hashed.encode())
            )
        except ValueError as e:
            # Stored value is not a bcrypt hash
            logger.warning(f"Password check against malformed hash: {e}")
            return False
