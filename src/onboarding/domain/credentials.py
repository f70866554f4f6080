"""
Password hashing and secret masking.

Passwords are hashed with bcrypt. When there is no stored hash to compare
against, a pre-computed dummy hash is checked instead so the response time
does not reveal whether the account or password exists.

bcrypt only reads the first 72 bytes of its input; longer passwords are
refused at hashing time instead of being silently truncated.
"""

import bcrypt

from .exceptions import ValidationError

MAX_PASSWORD_BYTES = 72

_DUMMY_BCRYPT_HASH = bcrypt.hashpw(b"dummy_password_for_timing_safety", bcrypt.gensalt(4)).decode()


def hash_password(password: str, rounds: int = 10, field: str = "password") -> str:
    """
    Hash password using bcrypt with the given cost factor.

    Raises:
        ValidationError: the password is longer than 72 bytes once encoded
    """
    secret = password.encode()
    if len(secret) > MAX_PASSWORD_BYTES:
        raise ValidationError(
            f"Password must be at most {MAX_PASSWORD_BYTES} bytes", {"field": field}
        )
    return bcrypt.hashpw(secret, bcrypt.gensalt(rounds=rounds)).decode()


def verify_password(password: str, password_hash: str | None) -> bool:
    """Compare a plaintext password with a stored bcrypt hash."""
    secret = password.encode()
    if password_hash is None or len(secret) > MAX_PASSWORD_BYTES:
        # No stored hash can match an over-long password.
        bcrypt.checkpw(secret[:MAX_PASSWORD_BYTES], _DUMMY_BCRYPT_HASH.encode())
        return False
    return bcrypt.checkpw(secret, password_hash.encode())


def mask_secret(secret: str | None) -> str:
    """Keep the first and last characters; star out the rest."""
    if not secret:
        return ""
    if len(secret) <= 2:
        return "*" * len(secret)
    return f"{secret[0]}{'*' * (len(secret) - 2)}{secret[-1]}"


def normalize_email(email: str) -> str:
    """
    Normalize email address for consistent storage and lookup.

    Applies: strip whitespace + lowercase
    """
    return email.strip().lower()
