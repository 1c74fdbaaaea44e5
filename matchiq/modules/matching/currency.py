"""Currency conversion against a prefetched rate table."""

from __future__ import annotations

from collections.abc import Iterable, Mapping

import structlog

from matchiq.models.reference import ExchangeRate

logger = structlog.get_logger()


class CurrencyConverter:
    """Converts amounts into the reference currency.

    Rates are expressed as USD per unit of currency. An unknown currency is
    treated as already being in the reference currency (1:1) and logged once.
    """

    def __init__(self, rates_to_usd: Mapping[str, float], reference_currency: str = "USD") -> None:
        self.rates = {code.upper(): float(rate) for code, rate in rates_to_usd.items() if rate}
        self.rates.setdefault("USD", 1.0)
        self.reference_currency = reference_currency.upper()
        self._warned: set[str] = set()

    @classmethod
    def from_models(cls, rows: Iterable[ExchangeRate], reference_currency: str = "USD") -> CurrencyConverter:
        return cls({row.currency_code: row.rate_to_usd for row in rows}, reference_currency)

    def _rate(self, code: str) -> float | None:
        rate = self.rates.get(code)
        if rate is None and code not in self._warned:
            self._warned.add(code)
            logger.warning("fx_rate_missing", currency=code, reference=self.reference_currency)
        return rate

    def to_reference_currency(self, amount: float, currency_code: str | None) -> float:
        code = (currency_code or self.reference_currency).upper()
        if code == self.reference_currency:
            return amount
        source_rate = self._rate(code)
        reference_rate = self._rate(self.reference_currency)
        if source_rate is None or reference_rate is None:
            return amount
        return amount * source_rate / reference_rate
