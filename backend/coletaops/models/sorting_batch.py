"""SortingBatch: the classification pass over one finished run's material.

While open, sorted items can be added and removed.  Closing the batch
turns every sorted item into its own StockLot (plus an IN movement) and
freezes the batch.  At most one open batch per run.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean, DateTime, Enum as SAEnum, Float, ForeignKey, String, Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from coletaops.database import Base


class QualityGrade(str, enum.Enum):
    A = "A"
    B = "B"
    C = "C"


class SortingBatch(Base):
    __tablename__ = "sorting_batches"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    run_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("collection_runs.id"), nullable=False, index=True
    )
    sorted_by: Mapped[str] = mapped_column(String(36), nullable=False)  # user_id
    is_closed: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    run = relationship("CollectionRun", back_populates="sorting_batches")
    items = relationship(
        "SortedItem", back_populates="batch", cascade="all, delete-orphan"
    )
    stock_lots = relationship("StockLot", back_populates="source_batch")


class SortedItem(Base):
    __tablename__ = "sorted_items"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    batch_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("sorting_batches.id"), nullable=False, index=True
    )
    material_type_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("material_types.id"), nullable=False
    )
    weight_kg: Mapped[float] = mapped_column(Float, nullable=False)
    quality_grade: Mapped[QualityGrade] = mapped_column(
        SAEnum(QualityGrade, native_enum=False, length=1), default=QualityGrade.B
    )
    contamination_pct: Mapped[float | None] = mapped_column(Float)
    contamination_note: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    batch = relationship("SortingBatch", back_populates="items")
    material_type = relationship("MaterialType")
