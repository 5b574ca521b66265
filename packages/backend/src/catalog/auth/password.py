"""Password hashing and strength rules.

Learn: Uses bcrypt for secure password hashing. bcrypt automatically
handles salting and is resistant to rainbow table attacks.
The work factor (rounds=12) takes ~100ms per hash on modern hardware.

Admins get a stricter rule than shoppers: at least 12 characters drawn
from letters, digits and @$!%*?&, with at least one of each class.
"""

import re

import bcrypt

MIN_USER_PASSWORD_LENGTH = 8
MIN_ADMIN_PASSWORD_LENGTH = 12
ADMIN_PASSWORD_SYMBOLS = "@$!%*?&"

_SYMBOLS = re.escape(ADMIN_PASSWORD_SYMBOLS)
_STRONG_PASSWORD = re.compile(
    rf"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[{_SYMBOLS}])"
    rf"[A-Za-z\d{_SYMBOLS}]{{{MIN_ADMIN_PASSWORD_LENGTH},}}$"
)

# bcrypt cost; lowered in tests through set_rounds()
_rounds = 12


def set_rounds(rounds: int) -> None:
    global _rounds
    _rounds = rounds


def hash_password(password: str) -> str:
    """Hash a password with bcrypt.

    Passwords are truncated to 72 bytes (bcrypt's limit).
    """
    pw_bytes = password.encode("utf-8")[:72]
    salt = bcrypt.gensalt(rounds=_rounds)
    return bcrypt.hashpw(pw_bytes, salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its bcrypt hash."""
    try:
        pw_bytes = password.encode("utf-8")[:72]
        hash_bytes = password_hash.encode("utf-8")
        return bcrypt.checkpw(pw_bytes, hash_bytes)
    except (ValueError, TypeError):
        return False


def is_strong_admin_password(password: str) -> bool:
    return bool(_STRONG_PASSWORD.match(password))
