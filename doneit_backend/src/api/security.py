from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Optional

import bcrypt

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 50
PASSWORD_MIN_LENGTH = 8
# bcrypt only looks at the first 72 bytes of its input
PASSWORD_MAX_BYTES = 72

_USERNAME_RE = re.compile(r"^[A-Za-z0-9_-]+$")


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a credential format check."""

    valid: bool
    error: Optional[str] = None


_OK = ValidationResult(valid=True)


# PUBLIC_INTERFACE
def hash_password(password: str) -> str:
    """Return a salted bcrypt hash of the password."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


# PUBLIC_INTERFACE
def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a stored hash. Malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


# PUBLIC_INTERFACE
def validate_username(username: Any) -> ValidationResult:
    """
    Usernames are 3..50 characters of letters, digits, underscores or hyphens.
    They are case-sensitive and never trimmed.
    """
    if not isinstance(username, str) or not username:
        return ValidationResult(False, "Username is required")
    if len(username) < USERNAME_MIN_LENGTH:
        return ValidationResult(False, f"Username must be at least {USERNAME_MIN_LENGTH} characters")
    if len(username) > USERNAME_MAX_LENGTH:
        return ValidationResult(False, f"Username must be at most {USERNAME_MAX_LENGTH} characters")
    if not _USERNAME_RE.match(username):
        return ValidationResult(False, "Username can only contain letters, numbers, underscores and hyphens")
    return _OK


# PUBLIC_INTERFACE
def validate_password(password: Any) -> ValidationResult:
    """Passwords need 8+ characters, at most 72 bytes, and at least one letter and one digit."""
    if not isinstance(password, str) or not password:
        return ValidationResult(False, "Password is required")
    if len(password) < PASSWORD_MIN_LENGTH:
        return ValidationResult(False, f"Password must be at least {PASSWORD_MIN_LENGTH} characters")
    if len(password.encode("utf-8")) > PASSWORD_MAX_BYTES:
        return ValidationResult(False, f"Password must be at most {PASSWORD_MAX_BYTES} bytes")
    if not any(c.isalpha() for c in password) or not any(c.isdigit() for c in password):
        return ValidationResult(False, "Password must contain at least one letter and one number")
    return _OK
