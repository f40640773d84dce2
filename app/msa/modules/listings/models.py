from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import JSON, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.msa.models import Base

if TYPE_CHECKING:
    from app.msa.modules.applications.models import Application


class Property(Base):
    __tablename__ = "properties"
    __table_args__ = (
        Index("idx_properties_availability", "availability"),
        Index("idx_properties_created_at", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    # Required
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[str] = mapped_column(String(512), nullable=False)
    rent: Mapped[int] = mapped_column(Integer, nullable=False)  # GBP per month
    availability: Mapped[str] = mapped_column(String(32), nullable=False, default="available")  # available, occupied, maintenance, sold

    # Layout
    bedrooms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # 0 = studio
    bathrooms: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    square_footage: Mapped[int | None] = mapped_column(Integer, nullable=True)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    amenities: Mapped[list | None] = mapped_column(JSON, nullable=True, default=list)
    photos: Mapped[list | None] = mapped_column(JSON, nullable=True, default=list)

    epc_rating: Mapped[str | None] = mapped_column(String(2), nullable=True)
    council_tax_band: Mapped[str | None] = mapped_column(String(2), nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    applications: Mapped[list["Application"]] = relationship(
        "Application",
        back_populates="property",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
