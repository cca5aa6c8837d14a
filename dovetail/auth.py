"""
Password hashing helpers.
Salted SHA-256, base64 encoded, with a 128-bit random salt per user.
"""

import base64
import hashlib
import hmac
import secrets

SALT_BYTES = 16


def create_salt() -> str:
    """Random 128-bit salt, base64 encoded."""
    return base64.b64encode(secrets.token_bytes(SALT_BYTES)).decode("ascii")


def hash_password(password: str, salt: str) -> str:
    """SHA-256 of password + salt, base64 encoded."""
    digest = hashlib.sha256((password + salt).encode("utf-8")).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_password(password_hash: str, password: str, salt: str) -> bool:
    """Compare a plaintext password against a stored hash and salt."""
    return hmac.compare_digest(hash_password(password, salt), password_hash)
