"""
Input syntax checks and lock-key normalization.

Matching is exact equality on stored values; nothing here changes what is
stored or matched. Normalized forms are only used to build advisory-lock
keys, so that two requests whose values differ only in formatting
(``A@X.com`` vs ``a@x.com``) still serialize against each other.

Phone Normalization Strategy:
    - Remove all non-digit characters except leading +
    - Assume US country code (+1) if 10 digits and no country code
    - Preserve international numbers as-is
"""

import re
from typing import List, Optional

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
# Optional +, no leading zero, 2-15 digits
PHONE_PATTERN = re.compile(r"^\+?[1-9]\d{1,14}$")
DIGITS_ONLY_PATTERN = re.compile(r"[^\d]")
US_PHONE_PATTERN = re.compile(r"^\d{10}$")


def is_valid_email(value: str) -> bool:
    """
    Check email syntax.

    Examples:
        >>> is_valid_email("doc@hillvalley.edu")
        True
        >>> is_valid_email("not-an-email")
        False
    """
    return bool(value) and EMAIL_PATTERN.match(value) is not None


def is_valid_phone(value: str) -> bool:
    """
    Check phone number syntax.

    Examples:
        >>> is_valid_phone("+14155551234")
        True
        >>> is_valid_phone("123456")
        True
        >>> is_valid_phone("0123")
        False
    """
    return bool(value) and PHONE_PATTERN.match(value) is not None


def normalize_phone(raw: str) -> str:
    """
    Normalize a phone number to E.164 format.

    Args:
        raw: Raw phone number in any format.

    Returns:
        Normalized phone number, or the original if unparseable.

    Examples:
        >>> normalize_phone("(415) 555-1234")
        '+14155551234'
        >>> normalize_phone("+44 20 7946 0958")
        '+442079460958'
    """
    if not raw:
        return raw

    cleaned = raw.strip()
    has_plus = cleaned.startswith("+")
    digits = DIGITS_ONLY_PATTERN.sub("", cleaned)

    if not digits:
        return raw

    if has_plus:
        return f"+{digits}"

    if US_PHONE_PATTERN.match(digits):
        return f"+1{digits}"

    if len(digits) == 11 and digits.startswith("1"):
        return f"+{digits}"

    if len(digits) >= 7:
        return f"+{digits}"

    return raw


def normalize_email(raw: str) -> str:
    """
    Normalize an email address: lowercase and strip whitespace.

    Examples:
        >>> normalize_email("John.Doe@Example.COM")
        'john.doe@example.com'
    """
    if not raw:
        return raw

    normalized = raw.strip().lower()

    if "@" not in normalized:
        return raw

    return normalized


def lock_keys(email: Optional[str], phone_number: Optional[str]) -> List[str]:
    """
    Build the sorted advisory-lock keys a request must hold.

    Examples:
        >>> lock_keys("Marty@Example.com", "415-555-1234")
        ['email:marty@example.com', 'phone:+14155551234']
        >>> lock_keys(None, "123456")
        ['phone:123456']
    """
    keys = set()
    if email:
        keys.add(f"email:{normalize_email(email)}")
    if phone_number:
        keys.add(f"phone:{normalize_phone(phone_number)}")
    return sorted(keys)
