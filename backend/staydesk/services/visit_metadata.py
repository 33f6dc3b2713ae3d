"""Visit metadata sidecar: typed fields carried inside a visit's message.

The visit table has no columns for short-stay details (nights, guests,
amount paid, payment reference) or for the identity of a client the owner
entered by hand, so producers write them into ``message`` as ``Key: value``
lines::

    Short stay booking.
    Check-in: 2024-03-10
    Check-out: 2024-03-13
    Nights: 3
    Guests: 2
    Total: KSh 36,000
    Payment reference: PSK-88231

    Manual visit scheduled by owner.
    Client Name: Jane Doe
    Client Phone: 0712345678

``decode`` reads both shapes back and never raises. ``classify`` turns a
message into the ``StandardVisit | ShortStayBooking`` tagged union that new
code should work with.
"""

import re
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

SHORT_STAY_MARKER = "Short stay"
SHORT_STAY_PREAMBLE = "Short stay booking."
MANUAL_VISIT_PREAMBLE = "Manual visit scheduled by owner."

KEY_CHECK_IN = "Check-in"
KEY_CHECK_OUT = "Check-out"
KEY_NIGHTS = "Nights"
KEY_GUESTS = "Guests"
KEY_TOTAL = "Total"
KEY_PAYMENT_REFERENCE = "Payment reference"
KEY_CLIENT_NAME = "Client Name"
KEY_CLIENT_PHONE = "Client Phone"

_NON_DIGITS = re.compile(r"[^0-9]")

# key -> (field name, numeric)
_SHORT_STAY_KEYS: dict[str, tuple[str, bool]] = {
    KEY_CHECK_IN: ("check_in", False),
    KEY_CHECK_OUT: ("check_out", False),
    KEY_NIGHTS: ("nights", True),
    KEY_GUESTS: ("guests", True),
    KEY_TOTAL: ("total", False),
    KEY_PAYMENT_REFERENCE: ("payment_reference", False),
}

_CLIENT_KEYS: dict[str, str] = {
    KEY_CLIENT_NAME: "name",
    KEY_CLIENT_PHONE: "phone",
}


# ---------------------------------------------------------------------------
# Decoded shapes
# ---------------------------------------------------------------------------


class ShortStayDetails(BaseModel):
    """Short-stay fields. ``None`` means the line was absent or unreadable."""

    check_in: str | None = None
    check_out: str | None = None
    nights: int | None = None
    guests: int | None = None
    total: str | None = None
    payment_reference: str | None = None

    model_config = ConfigDict(frozen=True)


class ClientOverride(BaseModel):
    """Client identity typed in by the owner for a manual visit."""

    name: str | None = None
    phone: str | None = None

    model_config = ConfigDict(frozen=True)


class VisitMetadata(BaseModel):
    """Everything ``decode`` could read from a message."""

    short_stay: ShortStayDetails | None = None
    client: ClientOverride | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def is_short_stay(self) -> bool:
        return self.short_stay is not None


class StandardVisit(BaseModel):
    """A plain viewing request."""

    kind: Literal["standard"] = "standard"
    client: ClientOverride | None = None

    model_config = ConfigDict(frozen=True)


class ShortStayBooking(ShortStayDetails):
    """A paid short stay."""

    kind: Literal["short_stay"] = "short_stay"
    client: ClientOverride | None = None


VisitDetails = Annotated[Union[StandardVisit, ShortStayBooking], Field(discriminator="kind")]


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


def _as_text(text: object) -> str:
    if isinstance(text, str):
        return text
    if isinstance(text, (bytes, bytearray)):
        return bytes(text).decode("utf-8", errors="replace")
    return ""


def _split_line(line: str) -> tuple[str, str] | None:
    """Split ``Key: value`` into its parts, or return None for prose."""
    key, sep, value = line.strip().partition(":")
    if not sep:
        return None
    return key.strip(), value.strip()


def parse_count(value: str) -> int | None:
    """Read a count from free text, e.g. ``"3 nights"`` -> 3.

    Every non-digit is dropped first. An empty remainder or zero is unset.
    """
    digits = _NON_DIGITS.sub("", value)
    if not digits:
        return None
    try:
        count = int(digits)
    except ValueError:
        # longer than the interpreter's int conversion limit
        return None
    return count or None


def decode(text: str | bytes | None) -> VisitMetadata:
    """Decode the metadata sidecar from a visit message.

    Short-stay fields are only read when the ``"Short stay"`` marker appears
    somewhere in the text, so an ordinary request that happens to contain a
    ``Check-in: ...`` line stays a plain viewing. Client lines are read from
    any message. Unknown lines are ignored; the last occurrence of a key wins.
    """
    body = _as_text(text)
    if not body:
        return VisitMetadata()

    gated = SHORT_STAY_MARKER in body
    stay: dict[str, object] = {}
    client: dict[str, str] = {}

    for line in body.splitlines():
        parts = _split_line(line)
        if parts is None:
            continue
        key, value = parts

        if key in _CLIENT_KEYS:
            if value:
                client[_CLIENT_KEYS[key]] = value
            continue

        if gated and key in _SHORT_STAY_KEYS:
            field, numeric = _SHORT_STAY_KEYS[key]
            parsed = parse_count(value) if numeric else (value or None)
            if parsed is None:
                stay.pop(field, None)
            else:
                stay[field] = parsed

    return VisitMetadata(
        short_stay=ShortStayDetails(**stay) if gated else None,
        client=ClientOverride(**client) if client else None,
    )


def classify(text: str | bytes | None) -> StandardVisit | ShortStayBooking:
    """Read a legacy free-text message into the typed visit union."""
    meta = decode(text)
    if meta.short_stay is not None:
        return ShortStayBooking(**meta.short_stay.model_dump(), client=meta.client)
    return StandardVisit(client=meta.client)


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def _one_line(value: object) -> str:
    return " ".join(str(value).split())


def _line(key: str, value: object) -> str:
    return f"{key}: {_one_line(value)}"


def encode_short_stay(details: ShortStayDetails, preamble: str = SHORT_STAY_PREAMBLE) -> str:
    """Build a short-stay message. Unset fields are left out."""
    if SHORT_STAY_MARKER not in preamble:
        raise ValueError(f"Short stay preamble must contain {SHORT_STAY_MARKER!r}")

    lines = [_one_line(preamble)]
    for key, (field, _numeric) in _SHORT_STAY_KEYS.items():
        value = getattr(details, field)
        if value is not None and _one_line(value):
            lines.append(_line(key, value))
    return "\n".join(lines)


def encode_manual_visit(
    client_name: str,
    client_phone: str,
    preamble: str = MANUAL_VISIT_PREAMBLE,
) -> str:
    """Build the message for an owner-entered visit."""
    return "\n".join(
        [
            _one_line(preamble),
            _line(KEY_CLIENT_NAME, client_name),
            _line(KEY_CLIENT_PHONE, client_phone),
        ]
    )
