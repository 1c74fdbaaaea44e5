"""Reference data read by the matching engine: industry catalog and FX rates."""

from sqlalchemy import Float, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from matchiq.models.base import BaseModel


class Industry(BaseModel):
    """Canonical (admin-curated) industry. Ad-hoc industries never get a row here."""

    __tablename__ = "industries"
    __table_args__ = (Index("ix_industries_is_active", "is_active"),)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)

    sub_industries: Mapped[list["SubIndustry"]] = relationship(
        back_populates="industry", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Industry(id={self.id}, name={self.name!r})>"


class SubIndustry(BaseModel):
    __tablename__ = "sub_industries"
    __table_args__ = (Index("ix_sub_industries_industry_id", "industry_id"),)

    industry_id: Mapped[int] = mapped_column(
        ForeignKey("industries.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)

    industry: Mapped["Industry"] = relationship(back_populates="sub_industries")


class ExchangeRate(BaseModel):
    """rate_to_usd = how many USD one unit of currency_code buys."""

    __tablename__ = "exchange_rates"

    currency_code: Mapped[str] = mapped_column(String(3), nullable=False, unique=True)
    rate_to_usd: Mapped[float] = mapped_column(Float, nullable=False)

    def __repr__(self) -> str:
        return f"<ExchangeRate({self.currency_code}={self.rate_to_usd} USD)>"
