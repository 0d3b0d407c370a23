"""
Parsing helpers shared by every document parser: labelled values, dates,
addresses. All helpers are best-effort and return None instead of raising.
"""
import re
from datetime import date
from typing import Iterable, Optional

from vault.schemas.extracted import Address

DATE_TOKEN = r"\d{1,4}[/\-.]\d{1,2}[/\-.]\d{2,4}"
_DATE_PARTS = re.compile(r"(\d{1,4})[/\-.](\d{1,2})[/\-.](\d{1,4})")

INDIAN_STATES = (
    "Andhra Pradesh", "Arunachal Pradesh", "Assam", "Bihar", "Chhattisgarh",
    "Goa", "Gujarat", "Haryana", "Himachal Pradesh", "Jharkhand", "Karnataka",
    "Kerala", "Madhya Pradesh", "Maharashtra", "Manipur", "Meghalaya", "Mizoram",
    "Nagaland", "Odisha", "Punjab", "Rajasthan", "Sikkim", "Tamil Nadu",
    "Telangana", "Tripura", "Uttar Pradesh", "Uttarakhand", "West Bengal",
)

# Two-digit years at or above this value are 19xx, below are 20xx
TWO_DIGIT_YEAR_PIVOT = 50


def clean(value: Optional[str]) -> Optional[str]:
    """Collapse whitespace; empty results become None."""
    if value is None:
        return None
    value = re.sub(r"\s+", " ", value).strip(" :-,\t")
    return value or None


def find_labelled(text: str, labels: str, value: str = r"([^\n]*)", flags: int = re.IGNORECASE) -> Optional[str]:
    """Value following the first label match, e.g. find_labelled(text, r"Name") on "Name: RAVI"."""
    match = re.search(rf"(?:{labels})\s*[:\-]?\s*{value}", text, flags)
    if not match:
        return None
    return clean(match.group(1))


def first_match(text: str, patterns: Iterable[str], flags: int = 0) -> Optional[str]:
    """First non-empty group-1 capture among `patterns`, tried in order."""
    for pattern in patterns:
        match = re.search(pattern, text, flags)
        if match and clean(match.group(1)):
            return clean(match.group(1))
    return None


def parse_date(value: Optional[str]) -> Optional[date]:
    """Parse D/M/Y or Y/M/D (separators / - .).

    A 4-digit first group means year-first; otherwise the date is read
    day-first, the convention of Indian documents.
    """
    if not value:
        return None
    match = _DATE_PARTS.search(value)
    if not match:
        return None
    first, month, last = match.groups()
    if len(first) == 4:
        year, day = int(first), int(last)
    else:
        if len(last) not in (2, 4):
            return None
        day, year = int(first), int(last)
        if len(last) == 2:
            year += 1900 if year >= TWO_DIGIT_YEAR_PIVOT else 2000
    try:
        return date(year, int(month), day)
    except ValueError:
        return None


def find_labelled_date(text: str, labels: str) -> Optional[date]:
    match = re.search(rf"(?:{labels})\s*[:\-]?\s*({DATE_TOKEN})", text, re.IGNORECASE)
    return parse_date(match.group(1)) if match else None


def find_any_date(text: str) -> Optional[date]:
    for match in re.finditer(DATE_TOKEN, text):
        parsed = parse_date(match.group(0))
        if parsed:
            return parsed
    return None


def extract_city(text: str) -> Optional[str]:
    match = re.search(r"(?:City|District)\s*[:\-]?\s*([A-Za-z ]+)", text, re.IGNORECASE)
    return clean(match.group(1)) if match else None


def extract_state(text: str) -> Optional[str]:
    lowered = text.lower()
    for state in INDIAN_STATES:
        if state.lower() in lowered:
            return state
    return None


def extract_pincode(text: str) -> Optional[str]:
    match = re.search(r"(?<!\d)(\d{6})(?!\d)", text)
    return match.group(1) if match else None


def parse_address(block: Optional[str]) -> Optional[Address]:
    """Structure a free-text address block; None when the block is empty."""
    if not block:
        return None
    lines = [line.strip() for line in block.split("\n") if line.strip()]
    if not lines:
        return None
    return Address(
        line1=lines[0],
        line2=lines[1] if len(lines) > 1 else None,
        city=extract_city(block),
        state=extract_state(block),
        pincode=extract_pincode(block),
        country="India",
    )


def find_address_block(text: str, labels: str, stop: str = r"PIN") -> Optional[str]:
    """Text after an address label, up to the line containing `stop` or the end of text."""
    match = re.search(
        rf"(?:{labels})\s*[:\-]?\s*(.*?)(?:\n[^\n]*?(?:{stop})|$)",
        text,
        re.IGNORECASE | re.DOTALL,
    )
    if not match:
        return None
    return match.group(1).strip() or None
