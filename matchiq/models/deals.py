"""Deal model: only the columns the matching engine writes on conversion."""

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from matchiq.models.base import BaseModel
from matchiq.models.enums import DealStatus


class Deal(BaseModel):
    __tablename__ = "deals"

    name: Mapped[str] = mapped_column(String(500), nullable=False)
    investor_id: Mapped[int] = mapped_column(
        ForeignKey("investors.id", ondelete="CASCADE"), nullable=False
    )
    target_id: Mapped[int] = mapped_column(
        ForeignKey("targets.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[DealStatus] = mapped_column(nullable=False, default=DealStatus.ACTIVE)
    stage_code: Mapped[str] = mapped_column(String(10), nullable=False, default="F")
    pipeline_type: Mapped[str] = mapped_column(String(20), nullable=False, default="target")
    created_by: Mapped[int | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<Deal(id={self.id}, name={self.name!r}, status={self.status.value})>"
