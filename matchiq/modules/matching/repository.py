"""Read access to the prospect registries and reference tables."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from matchiq.core.errors import ProspectNotFoundError
from matchiq.models.prospects import Investor, Target
from matchiq.models.reference import ExchangeRate, Industry
from matchiq.modules.matching.currency import CurrencyConverter
from matchiq.modules.matching.industry_reference import IndustryCatalog


class ProspectRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def active_investors(self) -> list[Investor]:
        stmt = (
            select(Investor)
            .where(Investor.is_active.is_(True))
            .options(selectinload(Investor.profile), selectinload(Investor.financial_profile))
            .order_by(Investor.id)
        )
        return list(self.session.execute(stmt).scalars().all())

    def active_targets(self) -> list[Target]:
        stmt = (
            select(Target)
            .where(Target.is_active.is_(True))
            .options(selectinload(Target.profile), selectinload(Target.financial_profile))
            .order_by(Target.id)
        )
        return list(self.session.execute(stmt).scalars().all())

    def get_investor(self, investor_id: int) -> Investor:
        investor = self.session.get(Investor, investor_id)
        if investor is None:
            raise ProspectNotFoundError("investor", investor_id)
        return investor

    def get_target(self, target_id: int) -> Target:
        target = self.session.get(Target, target_id)
        if target is None:
            raise ProspectNotFoundError("target", target_id)
        return target

    def industry_catalog(self) -> IndustryCatalog:
        stmt = (
            select(Industry)
            .where(Industry.is_active.is_(True))
            .options(selectinload(Industry.sub_industries))
        )
        return IndustryCatalog.from_models(self.session.execute(stmt).scalars().all())

    def currency_converter(self, reference_currency: str) -> CurrencyConverter:
        rows = self.session.execute(select(ExchangeRate)).scalars().all()
        return CurrencyConverter.from_models(rows, reference_currency)
