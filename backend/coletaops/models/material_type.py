"""MaterialType: a class of recyclable material (PET, cardboard, aluminium...).

Reference data for collected items, sorted items and stock lots.
Names are unique within an organization.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from coletaops.database import Base


class MaterialType(Base):
    __tablename__ = "material_types"
    __table_args__ = (
        UniqueConstraint("org_id", "name", name="uq_material_types_org_name"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    org_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("organizations.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    # PAPEL | PLASTICO | VIDRO | METAL | ORGANICO | REJEITO | ELETRONICO | OLEO | OUTROS
    category: Mapped[str | None] = mapped_column(String(50))
    default_unit: Mapped[str] = mapped_column(String(10), default="kg")
    requires_sorting: Mapped[bool] = mapped_column(Boolean, default=True)
    allows_contamination: Mapped[bool] = mapped_column(Boolean, default=False)
    reference_price: Mapped[float | None] = mapped_column(Float)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
