"""Phone number normalization for chat deep links.

Numbers typed by owners and visitors come in local (``0712 345 678``),
short (``712345678``) and international (``+254 712 345 678``) shapes. Chat
deep links need bare international digits.
"""

import re

from staydesk.config import settings

_NON_DIGITS = re.compile(r"[^0-9]")


def normalize(raw: str | None, country_code: str | None = None) -> str:
    """Return the dialable international digit string for ``raw``.

    - ``"0712345678"``       -> ``"254712345678"``
    - ``"712345678"``        -> ``"254712345678"``
    - ``"+254 712 345 678"`` -> ``"254712345678"``
    - ``""``                 -> ``""``

    Anything else is passed through as digits rather than rejected. An empty
    result means there is no number to send to.
    """
    code = country_code if country_code is not None else settings.phone_country_code
    digits = _NON_DIGITS.sub("", raw or "")
    if not digits:
        return ""
    if digits.startswith("0") and len(digits) >= 10:
        return code + digits[1:]
    if len(digits) == 9 and digits.startswith("7"):
        return code + digits
    return digits
