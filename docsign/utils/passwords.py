# docsign/utils/passwords.py
from __future__ import annotations

import re
from typing import Optional

from werkzeug.security import check_password_hash, generate_password_hash

MIN_PASSWORD_LENGTH = 10


def hash_password(plain_password: str) -> str:
    """scrypt via Werkzeug; the hash string carries its own parameters and salt."""
    if not isinstance(plain_password, str) or not plain_password.strip():
        raise ValueError("Password must be a non-empty string.")
    return generate_password_hash(plain_password, method="scrypt")


def verify_password(password_hash: Optional[str], plain_password: Optional[str]) -> bool:
    return bool(password_hash and plain_password) and check_password_hash(password_hash, plain_password)


# Account passwords only; public signers never hold one
_CHECKS = (
    (re.compile(r"[A-Z]"), "Include at least one uppercase letter."),
    (re.compile(r"[a-z]"), "Include at least one lowercase letter."),
    (re.compile(r"\d"), "Include at least one number."),
)


def password_problem(plain_password: object, min_length: int = MIN_PASSWORD_LENGTH) -> Optional[str]:
    """First policy violation as a user-facing message, or None when acceptable."""
    if not isinstance(plain_password, str) or not plain_password.strip():
        return "Password is required."

    pw = plain_password.strip()
    if len(pw) < min_length:
        return f"Password must be at least {min_length} characters."
    for pattern, message in _CHECKS:
        if not pattern.search(pw):
            return message
    return None
