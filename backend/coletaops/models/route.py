"""Route: an ordered sequence of collection points.

Stops are ordered manually by ``order_index`` (unique per route); there is
no geographic optimization.
"""

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from coletaops.database import Base


class Route(Base):
    __tablename__ = "routes"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    org_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("organizations.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    stops = relationship(
        "RouteStop",
        back_populates="route",
        order_by="RouteStop.order_index",
        cascade="all, delete-orphan",
    )


class RouteStop(Base):
    __tablename__ = "route_stops"
    __table_args__ = (
        UniqueConstraint("route_id", "order_index", name="uq_route_stops_route_order"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    route_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("routes.id"), nullable=False, index=True
    )
    point_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("collection_points.id"), nullable=False
    )
    order_index: Mapped[int] = mapped_column(Integer, nullable=False)
    planned_window: Mapped[str | None] = mapped_column(String(50))  # e.g. "08:00-09:00"
    notes: Mapped[str | None] = mapped_column(Text)

    route = relationship("Route", back_populates="stops")
    point = relationship("CollectionPoint")
