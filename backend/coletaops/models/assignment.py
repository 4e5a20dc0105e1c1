"""RouteAssignment: a route scheduled for a team and vehicle on a date/shift.

An assignment may be executed several times (one CollectionRun each), but
at most one run may be in progress at a time.  Assignments referenced by a
run are never deleted.
"""

import uuid
import datetime as dt

from sqlalchemy import Date, DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from coletaops.database import Base

SHIFTS = ("manha", "tarde", "noite")


class RouteAssignment(Base):
    __tablename__ = "route_assignments"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    route_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("routes.id"), nullable=False, index=True
    )
    team_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("teams.id"), nullable=False, index=True
    )
    vehicle_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("vehicles.id"), nullable=False
    )
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    shift: Mapped[str | None] = mapped_column(String(10))  # manha | tarde | noite
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=dt.datetime.utcnow)

    route = relationship("Route")
    team = relationship("Team")
    vehicle = relationship("Vehicle")
    runs = relationship(
        "CollectionRun", back_populates="assignment", order_by="CollectionRun.created_at"
    )
