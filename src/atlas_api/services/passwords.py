"""Password hashing and one-time code generation.

Hashes are stored as `pbkdf2_sha256$<iterations>$<salt hex>$<digest hex>`.
"""

import hashlib
import hmac
import secrets

ALGORITHM = "pbkdf2_sha256"
DEFAULT_ITERATIONS = 390000
CODE_DIGITS = 6
CODE_MIN = 10 ** (CODE_DIGITS - 1)
CODE_MAX = 10 ** CODE_DIGITS - 1


def _derive(password: str, salt: bytes, iterations: int) -> bytes:
    return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)


def hash_password(password: str, *, iterations: int = DEFAULT_ITERATIONS) -> str:
    salt = secrets.token_bytes(16)
    return f"{ALGORITHM}${iterations}${salt.hex()}${_derive(password, salt, iterations).hex()}"


def verify_password(password: str, password_hash: str) -> bool:
    """Constant-time check against a stored hash; anything unparseable never matches."""
    parts = password_hash.split("$")
    if len(parts) != 4 or parts[0] != ALGORITHM:
        return False
    try:
        iterations = int(parts[1])
        salt = bytes.fromhex(parts[2])
        expected = bytes.fromhex(parts[3])
    except ValueError:
        return False
    if iterations <= 0:
        return False
    return hmac.compare_digest(_derive(password, salt, iterations), expected)


def generate_numeric_code() -> str:
    """Six uniformly random digits from the OS CSPRNG; leading zeros excluded."""
    return str(CODE_MIN + secrets.randbelow(CODE_MAX - CODE_MIN + 1))
