"""Value formatters: canonical values -> display strings.

Number and currency defaults (delimiter, separator, unit, precision) and the
named time formats come from the locale table of the active
:class:`~formant.config.Configuration`; keyword options override them.
"""

import datetime
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

import phonenumbers
from dateutil import tz
from phonenumbers import NumberParseException, PhoneNumberFormat

from .config import Configuration, get_config
from .errors import ConfigurationError, FormatError


class FormatterKind(str, Enum):
    """Formatter names accepted by ``reformat(...)``."""

    NUMBER_WITH_DELIMITER = "number_with_delimiter"
    CURRENCY = "currency"
    PHONE_NUMBER = "phone_number"
    DATETIME = "datetime"


_GROUPS = re.compile(r"(\d)(?=(\d{3})+$)")
_DIRECTIVE = re.compile(r"%([-_0^]?)([a-zA-Z%])")


# --- Numbers ---
def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise FormatError(f"Cannot format {value!r} as a number")
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, int):
        amount = Decimal(value)
    elif isinstance(value, float):
        amount = Decimal(repr(value))
    elif isinstance(value, str):
        try:
            amount = Decimal(value.strip())
        except InvalidOperation as exc:
            raise FormatError(f"Cannot format {value!r} as a number") from exc
    else:
        raise FormatError(f"Cannot format {value!r} as a number")
    if not amount.is_finite():
        raise FormatError(f"Cannot format {value!r} as a number")
    return amount


def _split(amount: Decimal) -> Tuple[str, str, str]:
    text = format(amount, "f")
    sign = ""
    if text.startswith("-"):
        sign, text = "-", text[1:]
    whole, _, fraction = text.partition(".")
    return sign, whole, fraction


def _delimit(whole: str, delimiter: str) -> str:
    return _GROUPS.sub(lambda m: m.group(1) + delimiter, whole)


def number_with_delimiter(
    value: Any,
    *,
    delimiter: Optional[str] = None,
    separator: Optional[str] = None,
    locale: Optional[str] = None,
    config: Optional[Configuration] = None,
) -> str:
    """Group thousands: ``12345678.05`` -> ``"12,345,678.05"``.

    The fractional digits are kept exactly as given.
    """
    config = config or get_config()
    if delimiter is None:
        delimiter = config.translate("number.format.delimiter", locale, ",")
    if separator is None:
        separator = config.translate("number.format.separator", locale, ".")

    sign, whole, fraction = _split(_to_decimal(value))
    text = sign + _delimit(whole, delimiter)
    if fraction:
        text += separator + fraction
    return text


def currency(
    value: Any,
    *,
    symbol: Optional[str] = None,
    delimiter: Optional[str] = None,
    separator: Optional[str] = None,
    decimals: Optional[int] = None,
    locale: Optional[str] = None,
    config: Optional[Configuration] = None,
) -> str:
    """Render an amount as money: ``Decimal("5258.31")`` -> ``"$5,258.31"``."""
    config = config or get_config()
    defaults = config.translate("number.currency.format", locale, {})
    symbol = defaults.get("unit", "$") if symbol is None else symbol
    delimiter = defaults.get("delimiter", ",") if delimiter is None else delimiter
    separator = defaults.get("separator", ".") if separator is None else separator
    decimals = int(defaults.get("precision", 2)) if decimals is None else decimals

    amount = _to_decimal(value).quantize(
        Decimal(1).scaleb(-decimals), rounding=ROUND_HALF_UP
    )
    sign, whole, fraction = _split(amount)
    if amount.is_zero():
        sign = ""
    text = _delimit(whole, delimiter)
    if fraction:
        text += separator + fraction
    return f"{sign}{symbol}{text}"


# --- Phone numbers ---
def phone_number(
    value: Any,
    *,
    country_code: Optional[str] = None,
    config: Optional[Configuration] = None,
) -> str:
    """Render an E.164 number the way ``country_code`` writes it.

    Numbers from another country are shown in international format.
    """
    if value is None:
        raise FormatError("Cannot format None as a phone number")
    config = config or get_config()
    region = (country_code or config.default_country).upper()
    try:
        number = phonenumbers.parse(str(value), region)
    except NumberParseException as exc:
        raise FormatError(f"Cannot format {value!r} as a phone number") from exc

    if number.country_code == phonenumbers.country_code_for_region(region):
        return phonenumbers.format_number(number, PhoneNumberFormat.NATIONAL)
    return phonenumbers.format_number(number, PhoneNumberFormat.INTERNATIONAL)


# --- Dates and times ---
_NUMERIC: Dict[str, Tuple[Callable[[datetime.datetime], int], int, str]] = {
    "d": (lambda m: m.day, 2, "0"),
    "e": (lambda m: m.day, 2, " "),
    "m": (lambda m: m.month, 2, "0"),
    "H": (lambda m: m.hour, 2, "0"),
    "k": (lambda m: m.hour, 2, " "),
    "I": (lambda m: m.hour % 12 or 12, 2, "0"),
    "l": (lambda m: m.hour % 12 or 12, 2, " "),
    "M": (lambda m: m.minute, 2, "0"),
    "S": (lambda m: m.second, 2, "0"),
    "y": (lambda m: m.year % 100, 2, "0"),
    "Y": (lambda m: m.year, 1, "0"),
    "j": (lambda m: m.timetuple().tm_yday, 3, "0"),
}


def _name(names: Mapping[str, Any], key: str, index: int, fallback: str) -> str:
    table = names.get(key)
    if isinstance(table, list) and 0 <= index < len(table) and table[index]:
        return str(table[index])
    return fallback


def localize(
    moment: datetime.datetime,
    pattern: str,
    *,
    locale: Optional[str] = None,
    config: Optional[Configuration] = None,
) -> str:
    """Expand strftime directives using the locale's names and am/pm markers.

    ``%e``/``%l``/``%k`` are space padded and ``%p``/``%P`` give upper/lower
    case markers. Runs of whitespace in the result are collapsed.
    """
    config = config or get_config()
    names = config.translate("date", locale, {})
    am = str(config.translate("time.am", locale, "am"))
    pm = str(config.translate("time.pm", locale, "pm"))
    weekday = moment.isoweekday() % 7

    def expand(match: "re.Match[str]") -> str:
        flag, code = match.groups()
        if code in _NUMERIC:
            getter, width, pad = _NUMERIC[code]
            number = str(getter(moment))
            if flag == "-":
                text = number
            else:
                pad = {"_": " ", "0": "0"}.get(flag, pad)
                text = number.rjust(width, pad)
        elif code == "a":
            text = _name(names, "abbr_day_names", weekday, moment.strftime("%a"))
        elif code == "A":
            text = _name(names, "day_names", weekday, moment.strftime("%A"))
        elif code in ("b", "h"):
            text = _name(names, "abbr_month_names", moment.month, moment.strftime("%b"))
        elif code == "B":
            text = _name(names, "month_names", moment.month, moment.strftime("%B"))
        elif code == "p":
            text = (pm if moment.hour >= 12 else am).upper()
        elif code == "P":
            text = (pm if moment.hour >= 12 else am).lower()
        elif code == "%":
            text = "%"
        else:
            text = moment.strftime("%" + code)
        return text.upper() if flag == "^" else text

    return " ".join(_DIRECTIVE.sub(expand, pattern).split())


def date_time(
    value: Any,
    *,
    format: str = "default",
    locale: Optional[str] = None,
    time_zone: Optional[str] = None,
    config: Optional[Configuration] = None,
) -> str:
    """Render a datetime with a named locale format such as ``day_date_time``.

    A ``format`` containing ``%`` is used as a literal pattern.
    """
    config = config or get_config()
    if isinstance(value, datetime.datetime):
        moment = value
    elif isinstance(value, datetime.date):
        moment = datetime.datetime.combine(value, datetime.time())
    else:
        raise FormatError(f"Cannot format {value!r} as a date/time")

    if time_zone is None:
        zone = config.tzinfo
    else:
        zone = tz.gettz(time_zone)
        if zone is None:
            raise ConfigurationError(f"Unknown time zone '{time_zone}'")
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=zone)
    else:
        moment = moment.astimezone(zone)

    pattern = format if "%" in format else config.time_format(format, locale)
    return localize(moment, pattern, locale=locale, config=config)


FORMATTERS: Dict[FormatterKind, Callable[..., str]] = {
    FormatterKind.NUMBER_WITH_DELIMITER: number_with_delimiter,
    FormatterKind.CURRENCY: currency,
    FormatterKind.PHONE_NUMBER: phone_number,
    FormatterKind.DATETIME: date_time,
}
