"""Prospect registry models: Investor, Target and their profile sub-records.

The registries are owned by the CRUD application. The matching engine only
reads them; every JSON column below may hold a decoded list/dict, a JSON
string, or a bare scalar, depending on how the row was entered or imported.
"""

from typing import Any

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from matchiq.core.database import JSONVariant
from matchiq.models.base import BaseModel


class Investor(BaseModel):
    __tablename__ = "investors"
    __table_args__ = (Index("ix_investors_is_active", "is_active"),)

    code: Mapped[str | None] = mapped_column(String(50))  # registry reference, e.g. "INV-0042"
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)

    # Relationships
    profile: Mapped["InvestorProfile | None"] = relationship(
        back_populates="investor", uselist=False, cascade="all, delete-orphan"
    )
    financial_profile: Mapped["InvestorFinancialProfile | None"] = relationship(
        back_populates="investor", uselist=False, cascade="all, delete-orphan"
    )

    @property
    def display_name(self) -> str:
        if self.profile and self.profile.reg_name:
            return self.profile.reg_name
        return f"Investor #{self.id}"

    def __repr__(self) -> str:
        return f"<Investor(id={self.id}, code={self.code!r}, active={self.is_active})>"


class InvestorProfile(BaseModel):
    __tablename__ = "investor_profiles"

    investor_id: Mapped[int] = mapped_column(
        ForeignKey("investors.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    reg_name: Mapped[str | None] = mapped_column(String(500))
    hq_country: Mapped[Any] = mapped_column(JSONVariant, nullable=True)
    main_industry_operations: Mapped[Any] = mapped_column(JSONVariant, nullable=True)
    company_industry: Mapped[Any] = mapped_column(JSONVariant, nullable=True)
    target_countries: Mapped[Any] = mapped_column(JSONVariant, nullable=True)
    investment_budget: Mapped[Any] = mapped_column(JSONVariant, nullable=True)
    investment_condition: Mapped[Any] = mapped_column(JSONVariant, nullable=True)
    reason_ma: Mapped[Any] = mapped_column(JSONVariant, nullable=True)

    investor: Mapped["Investor"] = relationship(back_populates="profile")


class InvestorFinancialProfile(BaseModel):
    __tablename__ = "investor_financial_profiles"

    investor_id: Mapped[int] = mapped_column(
        ForeignKey("investors.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    default_currency: Mapped[str | None] = mapped_column(String(3))
    register_currency: Mapped[str | None] = mapped_column(String(3))

    investor: Mapped["Investor"] = relationship(back_populates="financial_profile")


class Target(BaseModel):
    __tablename__ = "targets"
    __table_args__ = (Index("ix_targets_is_active", "is_active"),)

    code: Mapped[str | None] = mapped_column(String(50))
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)

    # Relationships
    profile: Mapped["TargetProfile | None"] = relationship(
        back_populates="target", uselist=False, cascade="all, delete-orphan"
    )
    financial_profile: Mapped["TargetFinancialProfile | None"] = relationship(
        back_populates="target", uselist=False, cascade="all, delete-orphan"
    )

    @property
    def display_name(self) -> str:
        if self.profile and self.profile.reg_name:
            return self.profile.reg_name
        return f"Target #{self.id}"

    def __repr__(self) -> str:
        return f"<Target(id={self.id}, code={self.code!r}, active={self.is_active})>"


class TargetProfile(BaseModel):
    __tablename__ = "target_profiles"

    target_id: Mapped[int] = mapped_column(
        ForeignKey("targets.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    reg_name: Mapped[str | None] = mapped_column(String(500))
    hq_country: Mapped[Any] = mapped_column(JSONVariant, nullable=True)
    industry_ops: Mapped[Any] = mapped_column(JSONVariant, nullable=True)
    reason_ma: Mapped[Any] = mapped_column(JSONVariant, nullable=True)

    target: Mapped["Target"] = relationship(back_populates="profile")


class TargetFinancialProfile(BaseModel):
    __tablename__ = "target_financial_profiles"

    target_id: Mapped[int] = mapped_column(
        ForeignKey("targets.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    default_currency: Mapped[str | None] = mapped_column(String(3))
    expected_investment_amount: Mapped[Any] = mapped_column(JSONVariant, nullable=True)
    investment_condition: Mapped[Any] = mapped_column(JSONVariant, nullable=True)

    target: Mapped["Target"] = relationship(back_populates="financial_profile")
