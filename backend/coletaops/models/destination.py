import enum
import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum as SAEnum, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from coletaops.database import Base


class DestinationType(str, enum.Enum):
    COOPERATIVA = "COOPERATIVA"
    ATERRO = "ATERRO"            # landfill
    INDUSTRIA = "INDUSTRIA"
    COMPOSTAGEM = "COMPOSTAGEM"


class Destination(Base):
    """Where outgoing stock goes (buyer, cooperative, landfill...)."""

    __tablename__ = "destinations"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    org_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("organizations.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[DestinationType] = mapped_column(
        SAEnum(DestinationType, native_enum=False, length=20), nullable=False
    )
    address: Mapped[str | None] = mapped_column(String(500))
    contact: Mapped[str | None] = mapped_column(String(255))
    phone: Mapped[str | None] = mapped_column(String(30))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
