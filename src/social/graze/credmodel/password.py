"""Password hashing capability.

The credential model only ever verifies passwords. Hashing lives here so the
CLI and user-management tooling produce hashes the verifier accepts.
"""
from abc import ABC, abstractmethod
import secrets

import bcrypt


class PasswordHasher(ABC):
    @abstractmethod
    def verify(self, plain: str, hashed: str) -> bool:
        """Constant-time check of `plain` against `hashed`."""
        pass

    def dummy_hash(self) -> str:
        """
        A hash no password matches, verified in place of a real one when a
        login is unknown. Implementations should return a hash in their own
        format and work factor so both paths cost the same.
        """
        return ""


class BcryptPasswordHasher(PasswordHasher):
    def __init__(self, rounds: int = 12) -> None:
        self.rounds = rounds

    def hash(self, plain: str) -> str:
        return bcrypt.hashpw(plain.encode(), bcrypt.gensalt(rounds=self.rounds)).decode()

    def verify(self, plain: str, hashed: str) -> bool:
        try:
            return bcrypt.checkpw(plain.encode(), hashed.encode())
        except (ValueError, TypeError):
            return False

    def dummy_hash(self) -> str:
        return self.hash(secrets.token_urlsafe(32))
