"""Phone number utility functions."""

import re

JID_SUFFIXES = ("@s.whatsapp.net", "@c.us")


def normalize_phone(phone: str | None) -> str:
    """Normalize a phone number to the digits-only form WhatsApp uses.

    Strips a WhatsApp JID suffix, spaces, dashes, parentheses and a leading
    ``+``. The country code is kept as given; numbers are never guessed.

    Args:
        phone: Phone number or JID in any format

    Returns:
        Digits only (e.g. "5511999999999"), or empty string if phone is None

    Examples:
        >>> normalize_phone("5511999999999@s.whatsapp.net")
        '5511999999999'
        >>> normalize_phone("+55 (11) 99999-9999")
        '5511999999999'
        >>> normalize_phone(None)
        ''
    """
    if not phone:
        return ""

    for suffix in JID_SUFFIXES:
        if phone.endswith(suffix):
            phone = phone[: -len(suffix)]
            break

    return re.sub(r"\D", "", phone)


def mask_phone(phone: str | None) -> str:
    """Hide all but the last four digits, for log lines."""
    digits = normalize_phone(phone)
    if len(digits) <= 4:
        return digits
    return "*" * (len(digits) - 4) + digits[-4:]
