"""
Phone numbers are stored in E.164. Club members type them in national
format ("090-1234-5678"), so a leading trunk 0 is read as Japan (+81).
"""
import re
from typing import Optional

DEFAULT_COUNTRY_CODE = "81"
MIN_DIGITS = 8

_NON_DIGITS = re.compile(r"\D")


def normalize_phone(raw: Optional[str]) -> Optional[str]:
    """Return the E.164 form of `raw`, or None when it cannot be a phone number."""
    if not raw:
        return None
    text = raw.strip()
    plus = text.startswith("+")
    digits = _NON_DIGITS.sub("", text)
    if not plus:
        if digits.startswith("00"):
            digits = digits[2:]
        elif digits.startswith("0"):
            digits = DEFAULT_COUNTRY_CODE + digits[1:]
    if len(digits) < MIN_DIGITS:
        return None
    return "+" + digits
