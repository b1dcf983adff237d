"""Utility helpers for hashing and verifying account passwords."""

from __future__ import annotations

import binascii
import hashlib
import hmac
import secrets
from dataclasses import dataclass

import structlog

logger = structlog.get_logger(__name__)

DEFAULT_ALGORITHM = "pbkdf2_sha256"
DEFAULT_ITERATIONS = 390_000
SALT_BYTES = 16


@dataclass(slots=True)
class PasswordHash:
    """Structured representation of a PBKDF2 hash entry."""

    algorithm: str
    iterations: int
    salt: bytes
    digest: bytes

    @classmethod
    def parse(cls, encoded: str) -> "PasswordHash":
        """Parse an encoded password hash string."""

        try:
            algorithm, iterations, salt_hex, digest_hex = encoded.split("$")
        except ValueError as exc:
            raise ValueError("invalid password hash format") from exc
        return cls(
            algorithm=algorithm,
            iterations=int(iterations),
            salt=binascii.unhexlify(salt_hex),
            digest=binascii.unhexlify(digest_hex),
        )

    def encode(self) -> str:
        return "$".join(
            (
                self.algorithm,
                str(self.iterations),
                binascii.hexlify(self.salt).decode("ascii"),
                binascii.hexlify(self.digest).decode("ascii"),
            )
        )

    def verify(self, password: str) -> bool:
        """Check ``password`` against the stored digest using constant time."""

        if self.algorithm != DEFAULT_ALGORITHM:
            raise ValueError(f"unsupported algorithm: {self.algorithm}")
        derived = _derive(password, self.salt, self.iterations)
        return hmac.compare_digest(derived, self.digest)


def _derive(password: str, salt: bytes, iterations: int) -> bytes:
    return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)


def hash_password(password: str, *, iterations: int = DEFAULT_ITERATIONS) -> str:
    """Return an encoded PBKDF2 hash with a fresh random salt."""

    salt = secrets.token_bytes(SALT_BYTES)
    return PasswordHash(
        algorithm=DEFAULT_ALGORITHM,
        iterations=iterations,
        salt=salt,
        digest=_derive(password, salt, iterations),
    ).encode()


def verify_password(password: str, encoded: str | None) -> bool:
    """Return ``True`` when ``password`` matches ``encoded`` hash."""

    if not encoded:
        return False
    try:
        return PasswordHash.parse(encoded).verify(password)
    except ValueError as exc:
        logger.warning("identity.password_hash.unreadable", reason=str(exc))
        return False


__all__ = ["PasswordHash", "hash_password", "verify_password"]
