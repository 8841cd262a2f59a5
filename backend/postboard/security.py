"""
Postboard Backend - Password Hashing
====================================

What:  The single Argon2id hasher used for every stored password.
Who:   UserService (hash on registration), AuthService (verify on login).

All password hashing goes through this module so every hash shares the same
parameters. A hash created with weaker parameters is upgraded on the next
successful login (see AuthService.login).
"""

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

# Argon2id: 3 iterations, 64 MiB memory, 4 lanes.
PASSWORD_HASHER = PasswordHasher(
    time_cost=3,
    memory_cost=65536,
    parallelism=4,
    hash_len=32,
    salt_len=16,
)

# Verified against when the e-mail is unknown, so a failed login costs one
# Argon2 verification whichever credential was wrong.
DUMMY_HASH = PASSWORD_HASHER.hash("postboard-dummy-password")


def hash_password(password: str) -> str:
    """Hash a password using Argon2id."""
    return PASSWORD_HASHER.hash(password)


def verify_password(hashed: str, password: str) -> bool:
    """True when `password` matches `hashed`; malformed hashes never match."""
    try:
        return PASSWORD_HASHER.verify(hashed, password)
    except (VerificationError, InvalidHashError):
        return False


def needs_rehash(hashed: str) -> bool:
    return PASSWORD_HASHER.check_needs_rehash(hashed)
