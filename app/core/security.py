"""
Password hashing and friend code helpers.
"""

import re
import secrets
import string

from passlib.hash import bcrypt

FRIEND_CODE_LENGTH = 7
FRIEND_CODE_ALPHABET = string.ascii_uppercase + string.digits
FRIEND_CODE_PATTERN = re.compile(r"^[A-Z0-9]{7}$")


def get_password_hash(password: str) -> str:
    return bcrypt.hash(password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.verify(plain_password, password_hash)
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


def generate_friend_code() -> str:
    return "".join(secrets.choice(FRIEND_CODE_ALPHABET) for _ in range(FRIEND_CODE_LENGTH))


def normalize_friend_code(raw: str) -> str:
    return (raw or "").strip().upper()


def is_valid_friend_code(code: str) -> bool:
    return bool(FRIEND_CODE_PATTERN.match(code))
