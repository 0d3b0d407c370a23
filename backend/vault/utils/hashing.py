"""
Hashing Utilities — bcrypt PIN hashing and SHA-256 content digests.
"""
import hashlib

import bcrypt


def hash_pin(pin: str, rounds: int = 12) -> str:
    """Salted adaptive hash of a locker PIN."""
    return bcrypt.hashpw(pin.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_pin(pin: str, pin_hash: str) -> bool:
    """Constant-time comparison of a candidate PIN against its stored hash."""
    if not pin or not pin_hash:
        return False
    try:
        return bcrypt.checkpw(pin.encode("utf-8"), pin_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def file_digest(contents: bytes) -> str:
    """SHA-256 hex digest of an uploaded file."""
    return hashlib.sha256(contents).hexdigest()
