"""
Scalar normalizers.

Each function coerces one unreliable upstream scalar (a year, a currency,
an amount, a date) into a canonical value. None of them raise.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

import dateparser

from dealscope.core.config.vocabulary import (
    CURRENCY_SYMBOLS,
    NOT_AVAILABLE_TOKENS,
    get_field,
)

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "Not available"

MIN_YEAR = 1800

_NUMBER_RE = re.compile(r"-?\d[\d,]*(?:\.\d+)?")
_AMOUNT_WITH_SUFFIX_RE = re.compile(r"(-?\d[\d,]*(?:\.\d+)?)\s*([kKmMbB]n?)?\b")
_CODE_RE = re.compile(r"(?<![A-Za-z])([A-Z]{3})(?![A-Za-z])")
_YEAR_IN_TEXT_RE = re.compile(r"\b(18\d{2}|19\d{2}|20\d{2})\b")
_ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")


# =============================================================================
# Availability
# =============================================================================


def is_not_available(value: Any) -> bool:
    """True when value is one of the backend's many spellings of 'missing'."""
    if value is None:
        return True
    if isinstance(value, bool):
        return False
    if isinstance(value, float):
        return math.isnan(value)
    if isinstance(value, str):
        return value.strip().lower() in NOT_AVAILABLE_TOKENS
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) == 0
    return False


def display_or_not_available(value: Any) -> str:
    """Render a scalar as text, or 'Not available'."""
    if is_not_available(value):
        return NOT_AVAILABLE
    return str(value).strip()


# =============================================================================
# Year Extraction
# =============================================================================


def _year_in_range(year: int, current_year: int) -> int | None:
    return year if MIN_YEAR <= year <= current_year else None


def _extract_single_year(candidate: Any, current_year: int) -> int | None:
    if candidate is None or isinstance(candidate, bool):
        return None
    if isinstance(candidate, (date, datetime)):
        return _year_in_range(candidate.year, current_year)
    if isinstance(candidate, int):
        return _year_in_range(candidate, current_year)
    if isinstance(candidate, float):
        if math.isnan(candidate) or not candidate.is_integer():
            return None
        return _year_in_range(int(candidate), current_year)
    if isinstance(candidate, dict):
        return _extract_single_year(
            candidate.get("Year", candidate.get("year")), current_year
        )
    if not isinstance(candidate, str) or is_not_available(candidate):
        return None

    text = candidate.strip()
    leading = re.match(r"^\d{1,4}", text)
    if leading:
        year = _year_in_range(int(leading.group(0)), current_year)
        if year is not None:
            return year

    match = _YEAR_IN_TEXT_RE.search(text)
    if match:
        return _year_in_range(int(match.group(1)), current_year)
    return None


def extract_year(*candidates: Any, today: date | None = None) -> int | None:
    """Return the first plausible year among candidates.

    Accepts ints, digit strings, free text embedding a four-digit year,
    dates, and ``{"Year": ...}`` wrappers. Years outside
    [1800, current year] are rejected.

    Example:
        >>> extract_year(None, "nan", {"Year": "2012"})
        2012
    """
    current_year = (today or date.today()).year
    for candidate in candidates:
        year = _extract_single_year(candidate, current_year)
        if year is not None:
            return year
    return None


# =============================================================================
# Date Parsing
# =============================================================================


def normalize_date(value: Any) -> date | None:
    """Parse an announcement/closing date into a date.

    ISO dates take the fast path; anything else goes through dateparser.
    The backend's ``1900-01-01`` placeholder counts as missing.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or is_not_available(value):
        return None

    text = value.strip()
    match = _ISO_DATE_RE.match(text)
    if match:
        try:
            return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
        except ValueError:
            return None

    try:
        parsed = dateparser.parse(
            text,
            settings={
                "PREFER_DAY_OF_MONTH": "first",
                "RETURN_AS_TIMEZONE_AWARE": False,
                "DATE_ORDER": "MDY",
            },
        )
    except Exception:
        logger.debug("dateparser rejected %r", text, exc_info=True)
        return None

    return parsed.date() if parsed else None


def format_date_display(value: Any) -> str:
    """Long US-style date ('March 5, 2024') or 'Not available'."""
    parsed = normalize_date(value)
    if parsed is None:
        return NOT_AVAILABLE
    return f"{parsed:%B} {parsed.day}, {parsed.year}"


# =============================================================================
# Currency Extraction
# =============================================================================


def extract_currency_code(value: Any, default: str | None = None) -> str | None:
    """Pull a 3-letter currency code out of any of the backend's encodings.

    Handles bare codes (``"usd"``), wrapper objects (``{"Currency": "EUR"}``,
    ``{"_currency": {"Currency": "EUR"}}``), symbols (``"£"``) and display
    strings (``"1,000 EUR"``).
    """
    code = _extract_code(value)
    if code:
        return code
    if default and isinstance(default, str) and len(default.strip()) == 3:
        return default.strip().upper()
    return None


def _extract_code(value: Any) -> str | None:
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, dict):
        nested = get_field(value, "currency")
        if nested is None:
            nested = value.get("_currency")
        return _extract_code(nested)

    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text or is_not_available(text):
        return None

    if re.fullmatch(r"[A-Za-z]{3}", text):
        return text.upper()

    # An explicit code beats a symbol ("CAD $1,000" is CAD)
    match = _CODE_RE.search(text)
    if match:
        return match.group(1)

    for symbol, code in CURRENCY_SYMBOLS.items():
        if symbol in text:
            return code
    return None


# =============================================================================
# Money Parsing and Display
# =============================================================================


@dataclass(frozen=True)
class MoneyAmount:
    """A currency-denominated amount with its display text.

    ``unit`` is a display suffix for pre-scaled values (``"m"`` for amounts
    the backend already reports in millions).
    """

    raw_value: Decimal | None
    currency_code: str | None
    display: str
    unit: str = ""

    @property
    def available(self) -> bool:
        return self.display != NOT_AVAILABLE

    def to_dict(self) -> dict[str, Any]:
        return {
            "raw_value": float(self.raw_value) if self.raw_value is not None else None,
            "currency_code": self.currency_code,
            "display": self.display,
            "unit": self.unit,
        }


EMPTY_MONEY = MoneyAmount(raw_value=None, currency_code=None, display=NOT_AVAILABLE)


def parse_amount(value: Any) -> Decimal | None:
    """Parse a numeric amount, tolerating grouping commas and currency noise.

    Zero and blank amounts are treated as missing.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float, Decimal)):
        try:
            amount = Decimal(str(value))
        except InvalidOperation:
            return None
    elif isinstance(value, str):
        if is_not_available(value):
            return None
        match = _NUMBER_RE.search(value)
        if not match:
            return None
        try:
            amount = Decimal(match.group(0).replace(",", ""))
        except InvalidOperation:
            return None
    else:
        return None

    if not amount.is_finite() or amount == 0:
        return None
    return amount


def format_amount(value: Decimal | int | float) -> str:
    """Group thousands and keep at most three fraction digits."""
    amount = Decimal(str(value)).quantize(Decimal("0.001"), rounding=ROUND_HALF_UP)
    text = f"{amount:,.3f}"
    return text.rstrip("0").rstrip(".")


def format_money(
    value: Any,
    currency_code: str | None,
    unit: str = "",
) -> str:
    """Format an amount as ``"{CODE} {grouped amount}{unit}"``.

    Returns 'Not available' when either part is missing.
    """
    amount = parse_amount(value)
    code = extract_currency_code(currency_code)
    if amount is None or code is None:
        return NOT_AVAILABLE
    return f"{code} {format_amount(amount)}{unit}"


def normalize_money_display(text: Any, fallback_code: str | None = None) -> str | None:
    """Rewrite a backend display string into ``"{CODE} {amount}"`` form.

    ``"1,000 EUR"`` becomes ``"EUR 1,000"``; ``"40"`` with fallback ``"GBP"``
    becomes ``"GBP 40"``. Strings without any number (e.g. EV bands) are
    returned trimmed but otherwise untouched.
    """
    if not isinstance(text, str) or is_not_available(text):
        return None

    stripped = " ".join(text.split())
    code = extract_currency_code(stripped) or extract_currency_code(fallback_code)

    numeric_text = stripped
    if code:
        numeric_text = numeric_text.replace(code, " ")
    for symbol in CURRENCY_SYMBOLS:
        numeric_text = numeric_text.replace(symbol, " ")

    # Ranges ("50-100m") are bands, not amounts
    if re.search(r"\d\s*(?:-|–|to)\s*\d", numeric_text):
        return stripped

    match = _AMOUNT_WITH_SUFFIX_RE.search(numeric_text)
    if not match:
        return stripped

    try:
        amount = Decimal(match.group(1).replace(",", ""))
    except InvalidOperation:
        return stripped

    suffix = (match.group(2) or "").lower()
    formatted = f"{format_amount(amount)}{suffix}"
    return f"{code} {formatted}" if code else formatted


def parse_display_amount(display: Any) -> Decimal | None:
    """Recover the numeric portion of a display string."""
    if not isinstance(display, str):
        return None
    match = _NUMBER_RE.search(display)
    if not match:
        return None
    try:
        return Decimal(match.group(0).replace(",", ""))
    except InvalidOperation:
        return None


def money_amount(
    raw_value: Any,
    currency: Any = None,
    *,
    display: Any = None,
    band: Any = None,
    unit: str = "",
    default_currency: str | None = None,
) -> MoneyAmount:
    """Build a MoneyAmount from whatever the payload offers.

    Precedence for the display text: value and currency together; a
    ready-made backend display string; an EV band; the bare value; then
    'Not available'.
    """
    amount = parse_amount(raw_value)
    code = extract_currency_code(currency, default=default_currency)

    if amount is not None and code is not None:
        return MoneyAmount(
            raw_value=amount,
            currency_code=code,
            display=f"{code} {format_amount(amount)}{unit}",
            unit=unit,
        )

    backend_display = normalize_money_display(display, fallback_code=code)
    if backend_display:
        if amount is None:
            amount = parse_display_amount(backend_display)
        if code is None:
            code = extract_currency_code(backend_display)
        return MoneyAmount(raw_value=amount, currency_code=code, display=backend_display, unit=unit)

    if isinstance(band, str) and not is_not_available(band):
        return MoneyAmount(raw_value=amount, currency_code=code, display=band.strip(), unit=unit)

    if amount is not None:
        return MoneyAmount(
            raw_value=amount,
            currency_code=None,
            display=f"{format_amount(amount)}{unit}",
            unit=unit,
        )

    return MoneyAmount(raw_value=None, currency_code=code, display=NOT_AVAILABLE, unit=unit)


def format_millions(value: Any, currency_code: str | None) -> str:
    """Format an amount the backend reports in millions (``"USD 12.5m"``)."""
    return format_money(value, currency_code, unit="m")
