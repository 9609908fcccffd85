"""
Password hashing for user administration.

bcrypt with a configurable work factor; salt generation and storage are
handled by bcrypt itself and comparison is constant-time.
"""

import bcrypt

from backoffice_kernel.logging_config import get_logger

logger = get_logger("modules.organization.passwords")

DEFAULT_ROUNDS = 12


def hash_password(password: str, rounds: int = DEFAULT_ROUNDS) -> str:
    if not password:
        raise ValueError("Password cannot be empty")
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        logger.warning("invalid_password_hash")
        return False
