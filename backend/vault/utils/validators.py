"""
Validators — Regex and rule-based validation for PINs, identifiers and file names.
"""
import re

PIN_PATTERN = re.compile(r"^\d{4,6}$")


def validate_pin(pin: str | None) -> bool:
    """Locker PIN: 4 to 6 digits."""
    if not pin:
        return False
    return bool(PIN_PATTERN.match(pin))


def validate_aadhaar(aadhaar: str | None) -> bool:
    """Validate Aadhaar number: exactly 12 digits, first digit not 0 or 1."""
    if not aadhaar:
        return False
    cleaned = re.sub(r"\s", "", aadhaar)
    return bool(re.match(r"^[2-9]\d{11}$", cleaned))


def sanitize_filename(name: str | None) -> str:
    """Replace anything outside [a-zA-Z0-9.-] so the name is safe on disk."""
    if not name:
        return "document"
    return re.sub(r"[^a-zA-Z0-9.-]", "_", name.strip()) or "document"
