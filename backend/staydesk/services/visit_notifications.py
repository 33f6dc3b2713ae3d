"""Follow-up notifications for confirmed visits.

Both builders are pure: they read a ``VisitRecord`` (with its property and
requester already attached) and return an artifact the caller decides to
open. Nothing here sends anything, and a status change never triggers a
build on its own.

Decoded metadata fills in what has no column (nights, guests, amount paid,
payment reference) and replaces the requester's identity for owner-entered
visits. The receipt prints the stay dates the guest paid for, so decoded
``Check-in``/``Check-out`` lines come before the ``scheduled_date`` and
``check_out_date`` columns.
"""

from dataclasses import dataclass
from datetime import date, time
from decimal import ROUND_HALF_UP, Decimal
from urllib.parse import quote

from staydesk.config import settings
from staydesk.errors import NoDestinationError
from staydesk.schemas.visit import VisitRecord
from staydesk.services import phone
from staydesk.services.visit_metadata import decode

PLACEHOLDER = "—"
DEFAULT_GUEST_NAME = "Guest"


@dataclass(frozen=True)
class DeepLink:
    destination: str
    text: str
    url: str


@dataclass(frozen=True)
class ReceiptEmail:
    to: str
    subject: str
    body: str
    mailto: str


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def _parse_date(value: date | str | None) -> date | None:
    if isinstance(value, date):
        return value
    if not value:
        return None
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        return None


def format_short_date(value: date) -> str:
    """``Sun, Mar 10, 2024``"""
    return f"{value:%a}, {value:%b} {value.day}, {value.year}"


def format_long_date(value: date | str | None) -> str:
    """``Sunday 10 March 2024``; unparseable text is returned as written."""
    parsed = _parse_date(value)
    if parsed is None:
        return value.strip() if isinstance(value, str) and value.strip() else PLACEHOLDER
    return f"{parsed:%A} {parsed.day} {parsed:%B} {parsed.year}"


def format_time(value: time) -> str:
    """``2:30 PM``"""
    hour = value.hour % 12 or 12
    return f"{hour}:{value.minute:02d} {'AM' if value.hour < 12 else 'PM'}"


def format_price(amount: Decimal | int | float) -> str:
    """``KSh 120,000``, ``KSh 4,500.5``: at most three decimals, trailing zeros dropped."""
    value = Decimal(str(amount)).quantize(Decimal("0.001"), rounding=ROUND_HALF_UP)
    text = f"{value:,.3f}".rstrip("0").rstrip(".")
    return f"{settings.currency_prefix} {text}"


def _display_name(record: VisitRecord, client_name: str | None = None) -> str:
    if client_name:
        return client_name
    if record.visitor_name and record.visitor_name.strip():
        return record.visitor_name.strip()
    if record.requester is not None and record.requester.full_name:
        return record.requester.full_name
    return DEFAULT_GUEST_NAME


# ---------------------------------------------------------------------------
# Chat deep link
# ---------------------------------------------------------------------------


def build_deep_link(record: VisitRecord) -> DeepLink:
    """Build a chat link that confirms the visit to the client.

    The phone typed in for a manual visit wins over the requester's account
    phone.

    Raises:
        NoDestinationError: No phone number is available, or it has no digits.
    """
    client = decode(record.message).client
    client_phone = client.phone if client is not None else None
    raw_phone = client_phone or (record.requester.phone if record.requester is not None else None)
    if not raw_phone:
        raise NoDestinationError("No phone number to send the confirmation to")

    destination = phone.normalize(raw_phone)
    if not destination:
        raise NoDestinationError(f"Phone number {raw_phone!r} has no digits")

    name = _display_name(record, client.name if client is not None else None)
    title = record.property.title if record.property is not None else "the property"
    text = (
        f"Hello {name}, your visit to {title} on {format_short_date(record.scheduled_date)} "
        f"at {format_time(record.scheduled_time)} is confirmed."
    )
    base = settings.deep_link_base_url.rstrip("/")
    return DeepLink(
        destination=destination,
        text=text,
        url=f"{base}/{destination}?text={quote(text, safe='')}",
    )


# ---------------------------------------------------------------------------
# Receipt email
# ---------------------------------------------------------------------------


def receipt_recipient(record: VisitRecord) -> str:
    if record.visitor_email:
        return record.visitor_email
    if record.requester is not None and record.requester.email:
        return record.requester.email
    return ""


def build_receipt_body(record: VisitRecord) -> str:
    """Plain-text booking receipt: one CRLF-separated line per entry, no blank lines."""
    stay = decode(record.message).short_stay
    prop = record.property

    check_in = (stay.check_in if stay else None) or record.scheduled_date
    check_out = (stay.check_out if stay else None) or record.check_out_date or check_in
    nights = (stay.nights if stay else None) or 1
    guests = (stay.guests if stay else None) or 1
    if stay is not None and stay.total:
        total = stay.total
    elif prop is not None and prop.price is not None:
        total = format_price(prop.price)
    else:
        total = PLACEHOLDER
    payment_reference = (stay.payment_reference if stay else None) or PLACEHOLDER

    check_in_text = format_long_date(check_in)
    check_out_text = format_long_date(check_out)
    title = prop.title if prop is not None and prop.title else "Short stay property"
    location = prop.location if prop is not None else None

    lines = [
        f"Dear {_display_name(record)},",
        "Thank you for your booking. Please find your confirmation and payment details below.",
        "--- BOOKING CONFIRMATION ---",
        f"Property: {title}",
        f"Location: {location}" if location else "",
        f"Check-in:  {check_in_text}",
        f"Check-out: {check_out_text}",
        f"Nights:    {nights}",
        f"Guests:    {guests}",
        "--- PAYMENT ---",
        f"Amount paid: {total}",
        f"Payment reference: {payment_reference}",
        "--- CHECK-OUT INSTRUCTIONS ---",
        f"Please vacate the property by {settings.checkout_time} on {check_out_text} (your last paid day).",
        "Please leave the keys as agreed and ensure the property is left in a clean and tidy condition.",
        f"If you have any questions, please reply to this email or contact us through {settings.brand_name}.",
        f"Thank you for choosing {settings.brand_name}.",
    ]
    return "\r\n".join(line for line in lines if line)


def build_receipt_email(record: VisitRecord) -> ReceiptEmail:
    """Build the booking receipt the owner sends to the guest.

    Raises:
        NoDestinationError: Neither a visitor email nor a requester email exists.
    """
    to = receipt_recipient(record)
    if not to:
        raise NoDestinationError("No email address to send the receipt to")

    title = record.property.title if record.property is not None and record.property.title else "Short stay"
    subject = f"Booking confirmation – {title}"
    body = build_receipt_body(record)
    return ReceiptEmail(
        to=to,
        subject=subject,
        body=body,
        mailto=f"mailto:{to}?subject={quote(subject, safe='')}&body={quote(body, safe='')}",
    )
