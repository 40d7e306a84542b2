"""
Credential hashing.

The service only needs two operations from a hasher, so any
implementation with `hash` and `verify` can be injected. The default
stores PBKDF2-SHA256 digests as `pbkdf2_sha256$<rounds>$<salt>$<digest>`.
"""

import hashlib
import hmac
import secrets
from typing import Optional, Protocol


class PasswordHasher(Protocol):
    def hash(self, password: str) -> str: ...
    def verify(self, stored: str, password: str) -> bool: ...


class Pbkdf2PasswordHasher:
    """Salted PBKDF2-SHA256 hasher."""

    PREFIX = "pbkdf2_sha256"

    def __init__(self, rounds: int = 200_000):
        self.rounds = rounds

    def hash(self, password: str, salt: Optional[str] = None) -> str:
        salt = salt or secrets.token_hex(16)
        digest = hashlib.pbkdf2_hmac(
            "sha256",
            password.encode("utf-8"),
            bytes.fromhex(salt),
            self.rounds,
        ).hex()
        return f"{self.PREFIX}${self.rounds}${salt}${digest}"

    def verify(self, stored: str, password: str) -> bool:
        try:
            algo, rounds_s, salt, digest = stored.split("$", 3)
            if algo != self.PREFIX:
                return False
            candidate = hashlib.pbkdf2_hmac(
                "sha256",
                password.encode("utf-8"),
                bytes.fromhex(salt),
                int(rounds_s),
            ).hex()
        except ValueError:
            # Malformed stored hash
            return False
        return hmac.compare_digest(candidate, digest)
