"""
Display-currency conversion.

Amounts are stored in USD upstream; the UI can show them in GBP or EUR.
Rates are USD-based and fall back to fixed approximations when no fresh
rates are available.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

SUPPORTED_CURRENCIES = ("USD", "GBP", "EUR")


@dataclass(frozen=True)
class FxRates:
    """USD -> currency multipliers."""

    USD: Decimal = Decimal("1")
    GBP: Decimal = Decimal("0.79")
    EUR: Decimal = Decimal("0.92")
    last_updated: float = field(default=0.0, compare=False)
    source: str = field(default="fallback", compare=False)

    def rate(self, currency: str) -> Decimal | None:
        code = (currency or "").upper()
        if code not in SUPPORTED_CURRENCIES:
            return None
        return getattr(self, code)

    def is_fresh(self, ttl_seconds: float, now: float | None = None) -> bool:
        current = time.time() if now is None else now
        return self.source != "fallback" and (current - self.last_updated) < ttl_seconds


FALLBACK_RATES = FxRates()


def rates_from_payload(payload: Any, source: str, now: float | None = None) -> FxRates | None:
    """Build FxRates from an exchangerate.host/frankfurter style response.

    Missing currencies fall back individually; a payload without a
    ``rates`` object (or with ``success: false``) yields None.
    """
    if not isinstance(payload, dict) or payload.get("success") is False:
        return None
    rates = payload.get("rates")
    if not isinstance(rates, dict):
        return None

    def pick(code: str) -> Decimal:
        value = rates.get(code)
        if isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0:
            return Decimal(str(value))
        return getattr(FALLBACK_RATES, code)

    return FxRates(
        GBP=pick("GBP"),
        EUR=pick("EUR"),
        last_updated=time.time() if now is None else now,
        source=source,
    )


def convert_amount(
    amount: Decimal | int | float | None,
    from_currency: str,
    to_currency: str,
    rates: FxRates = FALLBACK_RATES,
) -> Decimal | None:
    """Convert between supported currencies via USD.

    Returns None for missing amounts or unsupported currencies.
    """
    if amount is None or isinstance(amount, bool):
        return None
    source_rate = rates.rate(from_currency)
    target_rate = rates.rate(to_currency)
    if source_rate is None or target_rate is None:
        return None
    value = Decimal(str(amount))
    if from_currency.upper() == to_currency.upper():
        return value
    return value / source_rate * target_rate
