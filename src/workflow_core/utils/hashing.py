"""
Secret hashing utilities.

Webhook secrets are stored only as bcrypt hashes with a per-secret salt.
"""

import bcrypt


def hash_secret(plain_secret: str) -> str:
    """
    Hash a plain text secret using bcrypt.

    Returns:
        Hashed secret as string
    """
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(plain_secret.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def verify_secret(plain_secret: str | None, hashed_secret: str) -> bool:
    """
    Verify a plain text secret against a bcrypt hash.

    A missing secret or a malformed hash never verifies.
    """
    if not plain_secret:
        return False
    try:
        return bcrypt.checkpw(plain_secret.encode("utf-8"), hashed_secret.encode("utf-8"))
    except ValueError:
        return False
