"""Warehouse stock: lots and their movement ledger.

A StockLot holds one material type.  ``total_kg`` is the cumulative IN
quantity; ``available_kg`` is what is left on the floor and never goes
negative.  Lots are created either manually or, one per sorted item, when
a sorting batch is closed.

StockMovement is append-only.  Each movement changes its lot in the same
transaction that creates it:

    IN      available += qty, total += qty
    OUT     available -= qty            (qty must not exceed available)
    ADJUST  available  = qty            (absolute value, not a delta)
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum as SAEnum, Float, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from coletaops.database import Base
from coletaops.models.sorting_batch import QualityGrade


class MovementType(str, enum.Enum):
    IN = "IN"
    OUT = "OUT"
    ADJUST = "ADJUST"


class StockLot(Base):
    __tablename__ = "stock_lots"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    org_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("organizations.id"), nullable=False, index=True
    )
    material_type_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("material_types.id"), nullable=False, index=True
    )
    # Set when the lot came out of a sorting batch
    source_batch_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("sorting_batches.id"), index=True
    )

    total_kg: Mapped[float] = mapped_column(Float, nullable=False)
    available_kg: Mapped[float] = mapped_column(Float, nullable=False)
    quality_grade: Mapped[QualityGrade | None] = mapped_column(
        SAEnum(QualityGrade, native_enum=False, length=1)
    )
    origin_note: Mapped[str | None] = mapped_column(String(255))

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    material_type = relationship("MaterialType")
    source_batch = relationship("SortingBatch", back_populates="stock_lots")
    movements = relationship(
        "StockMovement",
        back_populates="lot",
        order_by="StockMovement.moved_at.desc()",
    )


class StockMovement(Base):
    __tablename__ = "stock_movements"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    lot_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("stock_lots.id"), nullable=False, index=True
    )
    type: Mapped[MovementType] = mapped_column(
        SAEnum(MovementType, native_enum=False, length=10), nullable=False, index=True
    )
    quantity_kg: Mapped[float] = mapped_column(Float, nullable=False)

    # Outbound context
    destination_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("destinations.id")
    )
    vehicle_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("vehicles.id")
    )
    invoice_ref: Mapped[str | None] = mapped_column(String(100))

    notes: Mapped[str | None] = mapped_column(Text)
    moved_by: Mapped[str] = mapped_column(String(36), nullable=False)  # user_id
    moved_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)

    lot = relationship("StockLot", back_populates="movements")
    destination = relationship("Destination")
    vehicle = relationship("Vehicle")
