"""Immutable per-run views of the prospect fields the scorers read.

A snapshot is taken once per prospect per run, so a full rescan touches each
ORM row once instead of once per pair. Field values are kept raw; the
scorers coerce them through :mod:`matchiq.modules.matching.fields`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from matchiq.models.prospects import Investor, Target
from matchiq.modules.matching.fields import coerce_currency

DEFAULT_CURRENCY = "USD"


@dataclass(frozen=True)
class InvestorSnapshot:
    id: int
    name: str
    main_industries: Any = None
    company_industries: Any = None
    target_countries: Any = None
    budget: Any = None
    currency: str = DEFAULT_CURRENCY
    investment_condition: Any = None
    reason_ma: Any = None

    @classmethod
    def from_model(cls, investor: Investor) -> InvestorSnapshot:
        profile = investor.profile
        financial = investor.financial_profile
        currency = None
        if financial is not None:
            currency = financial.default_currency or financial.register_currency
        return cls(
            id=investor.id,
            name=investor.display_name,
            main_industries=profile.main_industry_operations if profile else None,
            company_industries=profile.company_industry if profile else None,
            target_countries=profile.target_countries if profile else None,
            budget=profile.investment_budget if profile else None,
            currency=coerce_currency(currency, DEFAULT_CURRENCY),
            investment_condition=profile.investment_condition if profile else None,
            reason_ma=profile.reason_ma if profile else None,
        )


@dataclass(frozen=True)
class TargetSnapshot:
    id: int
    name: str
    industries: Any = None
    hq_country: Any = None
    desired_investment: Any = None
    currency: str = DEFAULT_CURRENCY
    investment_condition: Any = None
    reason_ma: Any = None

    @classmethod
    def from_model(cls, target: Target) -> TargetSnapshot:
        profile = target.profile
        financial = target.financial_profile
        return cls(
            id=target.id,
            name=target.display_name,
            industries=profile.industry_ops if profile else None,
            hq_country=profile.hq_country if profile else None,
            desired_investment=financial.expected_investment_amount if financial else None,
            currency=coerce_currency(financial.default_currency if financial else None, DEFAULT_CURRENCY),
            investment_condition=financial.investment_condition if financial else None,
            reason_ma=profile.reason_ma if profile else None,
        )
