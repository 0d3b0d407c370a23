from vault.utils.hashing import hash_pin, verify_pin, file_digest
from vault.utils.validators import validate_pin, validate_aadhaar, sanitize_filename
from vault.utils.ring_buffer import RingBuffer, append_bounded, ACCESS_LOG_CAPACITY, AUDIT_TRAIL_CAPACITY
from vault.utils.rounding import round_half_up

__all__ = [
    "hash_pin", "verify_pin", "file_digest",
    "validate_pin", "validate_aadhaar", "sanitize_filename",
    "RingBuffer", "append_bounded", "ACCESS_LOG_CAPACITY", "AUDIT_TRAIL_CAPACITY",
    "round_half_up",
]
