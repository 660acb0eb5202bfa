"""
Password hashing for account credentials (bcrypt via passlib).
"""

from passlib.context import CryptContext

DEFAULT_ROUNDS = 12


class PasswordHasher:
    """Hashes and verifies account passwords."""

    def __init__(self, rounds: int = DEFAULT_ROUNDS):
        self._context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=rounds,
        )

    def hash(self, password: str) -> str:
        return self._context.hash(password)

    def verify(self, plain_password: str, hashed_password: str) -> bool:
        """
        Check a login attempt against a stored hash.

        Returns False for malformed hashes instead of raising, so a corrupted
        row reads as a failed login.
        """
        try:
            return self._context.verify(plain_password, hashed_password)
        except ValueError:
            return False


password_hasher = PasswordHasher()
