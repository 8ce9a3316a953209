"""North American phone number helpers. Canonical form is +1XXXXXXXXXX."""
import re
from typing import List, Optional

_CANONICAL = re.compile(r"^\+1\d{10}$")


def format_phone_number(phone: Optional[str]) -> Optional[str]:
    """
    Canonicalise any of 416-555-0200, (416) 555-0200, 4165550200,
    14165550200 or +14165550200. Returns None when it cannot be a NANP number.
    """
    if not phone:
        return None
    digits = re.sub(r"\D", "", phone)
    if len(digits) == 10:
        return f"+1{digits}"
    if len(digits) == 11 and digits.startswith("1"):
        return f"+{digits}"
    return None


def is_valid_phone_number(phone: Optional[str]) -> bool:
    return bool(phone) and bool(_CANONICAL.match(phone))


def display_phone_number(phone: str) -> str:
    """+14165550200 -> (416) 555-0200; anything else is returned unchanged."""
    if not is_valid_phone_number(phone):
        return phone
    digits = phone[2:]
    return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"


def get_phone_variations(phone: Optional[str]) -> List[str]:
    """Every stored format a user's phone may have been saved in."""
    standardized = format_phone_number(phone)
    if not standardized:
        return []
    digits = standardized[2:]
    variations = [
        standardized,
        digits,
        f"1{digits}",
        f"{digits[:3]}-{digits[3:6]}-{digits[6:]}",
        f"({digits[:3]}) {digits[3:6]}-{digits[6:]}",
    ]
    # dict.fromkeys keeps order while dropping duplicates
    return list(dict.fromkeys(variations))
