import enum
import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum as SAEnum, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from coletaops.database import Base


class UserRole(str, enum.Enum):
    ADMIN = "ADMIN"
    GESTOR_OPERACAO = "GESTOR_OPERACAO"    # operations manager
    ALMOXARIFE = "ALMOXARIFE"              # warehouse keeper
    SUPERVISOR = "SUPERVISOR"
    COLETOR = "COLETOR"                    # field collector
    TRIAGEM = "TRIAGEM"                    # sorting operator
    VISUALIZADOR = "VISUALIZADOR"          # read-only


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    email: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False, index=True
    )
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(
        SAEnum(UserRole, native_enum=False, length=20),
        default=UserRole.VISUALIZADOR,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    org_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("organizations.id"), nullable=False, index=True
    )
    # Optional link to the field employee this login belongs to
    employee_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("employees.id")
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    org = relationship("Organization", back_populates="users")
    employee = relationship("Employee")
