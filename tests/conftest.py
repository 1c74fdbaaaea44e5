"""Shared test fixtures: in-memory SQLite session and prospect factories."""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import matchiq.models  # noqa: F401  (populate Base.metadata)
from matchiq.core.database import Base
from matchiq.models import (
    ExchangeRate,
    Industry,
    Investor,
    InvestorFinancialProfile,
    InvestorProfile,
    SubIndustry,
    Target,
    TargetFinancialProfile,
    TargetProfile,
)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
def db(session_factory) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


# ── Factories ────────────────────────────────────────────────────────────────


@pytest.fixture
def make_investor(db: Session):
    def _make(
        name: str = "Acme Capital",
        *,
        industries: Any = None,
        company_industries: Any = None,
        countries: Any = None,
        budget: Any = None,
        currency: str | None = "USD",
        condition: Any = None,
        reason_ma: Any = None,
        is_active: bool = True,
    ) -> Investor:
        investor = Investor(code=f"INV-{name[:8].upper()}", is_active=is_active)
        investor.profile = InvestorProfile(
            reg_name=name,
            main_industry_operations=industries,
            company_industry=company_industries,
            target_countries=countries,
            investment_budget=budget,
            investment_condition=condition,
            reason_ma=reason_ma,
        )
        investor.financial_profile = InvestorFinancialProfile(default_currency=currency)
        db.add(investor)
        db.flush()
        return investor

    return _make


@pytest.fixture
def make_target(db: Session):
    def _make(
        name: str = "Target Co",
        *,
        industries: Any = None,
        hq_country: Any = None,
        desired: Any = None,
        currency: str | None = "USD",
        condition: Any = None,
        reason_ma: Any = None,
        is_active: bool = True,
    ) -> Target:
        target = Target(code=f"TGT-{name[:8].upper()}", is_active=is_active)
        target.profile = TargetProfile(
            reg_name=name,
            industry_ops=industries,
            hq_country=hq_country,
            reason_ma=reason_ma,
        )
        target.financial_profile = TargetFinancialProfile(
            default_currency=currency,
            expected_investment_amount=desired,
            investment_condition=condition,
        )
        db.add(target)
        db.flush()
        return target

    return _make


@pytest.fixture
def seed_reference(db: Session):
    def _seed(industries: dict[int, tuple[str, list[str]]] | None = None, rates: dict[str, float] | None = None):
        for industry_id, (name, subs) in (industries or {}).items():
            industry = Industry(id=industry_id, name=name)
            industry.sub_industries = [SubIndustry(name=sub) for sub in subs]
            db.add(industry)
        for code, rate in (rates or {}).items():
            db.add(ExchangeRate(currency_code=code, rate_to_usd=rate))
        db.flush()

    return _seed

