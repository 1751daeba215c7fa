"""Value parsers: raw form input -> canonical typed values.

Every parser takes the current attribute value plus keyword options and
returns the canonical value, or raises :class:`~formant.errors.ParseError`.
Parsers accept their own output unchanged, so running the pipeline twice
yields the same values.
"""

import datetime
import re
import unicodedata
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any, Callable, Dict, Optional

import phonenumbers
from dateutil import parser as date_parser
from dateutil import tz
from phonenumbers import NumberParseException, PhoneNumberFormat

from .config import Configuration, get_config
from .errors import ConfigurationError, ParseError


class ParserKind(str, Enum):
    """Parser names accepted by ``parse(...)``."""

    STRIP_WHITESPACE = "strip_whitespace"
    PHONE_NUMBER = "phone_number"
    DATETIME = "datetime"
    CURRENCY = "currency"


_NON_DIGITS = re.compile(r"\D")
_DECIMAL_SHAPE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)$")


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


# --- Strings ---
def strip_whitespace(
    value: Any, *, squish: bool = False, config: Optional[Configuration] = None
) -> Any:
    """Trim outer whitespace; with ``squish`` also collapse inner runs."""
    if not isinstance(value, str):
        return value
    if squish:
        return " ".join(value.split())
    return value.strip()


# --- Phone numbers ---
def phone_number(
    value: Any,
    *,
    country_code: Optional[str] = None,
    config: Optional[Configuration] = None,
) -> Optional[str]:
    """Normalize a phone number to E.164 (``"312-555-1212"`` -> ``"+13125551212"``)."""
    if _blank(value):
        return None
    config = config or get_config()
    region = (country_code or config.default_country).upper()

    text = str(value).strip()
    digits = _NON_DIGITS.sub("", text)
    if not digits:
        raise ParseError("is not a valid phone number", value)
    candidate = "+" + digits if text.startswith("+") else digits

    try:
        number = phonenumbers.parse(candidate, region)
    except NumberParseException as exc:
        raise ParseError("is not a valid phone number", value) from exc
    if not phonenumbers.is_possible_number(number):
        raise ParseError("is not a valid phone number", value)
    return phonenumbers.format_number(number, PhoneNumberFormat.E164)


# --- Dates and times ---
def _zone(time_zone: Optional[str], config: Configuration) -> datetime.tzinfo:
    if time_zone is None:
        return config.tzinfo
    zone = tz.gettz(time_zone)
    if zone is None:
        raise ConfigurationError(f"Unknown time zone '{time_zone}'")
    return zone


def date_time(
    value: Any,
    *,
    time_zone: Optional[str] = None,
    config: Optional[Configuration] = None,
) -> Optional[datetime.datetime]:
    """Parse free-form text into an aware datetime in the configured zone.

    Naive input is taken to be local to the zone; input that carries its own
    offset is converted into it.
    """
    if _blank(value):
        return None
    zone = _zone(time_zone, config or get_config())

    if isinstance(value, datetime.datetime):
        moment = value
    elif isinstance(value, datetime.date):
        moment = datetime.datetime.combine(value, datetime.time())
    elif isinstance(value, str):
        try:
            moment = date_parser.parse(value.strip())
        except (ValueError, OverflowError) as exc:
            raise ParseError("is not a valid date/time", value) from exc
    else:
        raise ParseError("is not a valid date/time", value)

    if moment.tzinfo is None:
        return moment.replace(tzinfo=zone)
    return moment.astimezone(zone)


# --- Currency ---
def _currency_text(text: str) -> str:
    text = text.strip()
    negative = text.startswith("(") and text.endswith(")")
    if negative:
        text = text[1:-1]
    kept = "".join(
        ch
        for ch in text
        if not (ch.isspace() or ch == "," or unicodedata.category(ch) == "Sc")
    )
    if negative and not kept.startswith(("-", "+")):
        kept = "-" + kept
    return kept


def currency(
    value: Any,
    *,
    scale: Optional[int] = None,
    config: Optional[Configuration] = None,
) -> Optional[Decimal]:
    """Parse ``"$5,258.31"`` or ``5258.31`` into an exact ``Decimal``.

    The amount is quantized to ``scale`` places (``Configuration.currency_scale``
    by default) with half-up rounding.
    """
    if _blank(value):
        return None
    if scale is None:
        scale = (config or get_config()).currency_scale

    if isinstance(value, bool):
        raise ParseError("is not a valid currency amount", value)
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, int):
        amount = Decimal(value)
    elif isinstance(value, float):
        amount = Decimal(repr(value))
    elif isinstance(value, str):
        text = _currency_text(value)
        if not _DECIMAL_SHAPE.match(text):
            raise ParseError("is not a valid currency amount", value)
        amount = Decimal(text)
    else:
        raise ParseError("is not a valid currency amount", value)

    if not amount.is_finite():
        raise ParseError("is not a valid currency amount", value)
    try:
        return amount.quantize(Decimal(1).scaleb(-scale), rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        raise ParseError("is not a valid currency amount", value) from exc


PARSERS: Dict[ParserKind, Callable[..., Any]] = {
    ParserKind.STRIP_WHITESPACE: strip_whitespace,
    ParserKind.PHONE_NUMBER: phone_number,
    ParserKind.DATETIME: date_time,
    ParserKind.CURRENCY: currency,
}
