"""CollectionRun: one real-world execution of a RouteAssignment.

A run is created with one CollectionEvent per route stop, all PENDENTE.

Run lifecycle:    EM_ANDAMENTO → CONCLUIDO            (never reopened)
Event lifecycle:  PENDENTE → EM_ANDAMENTO → COLETADO | NAO_COLETADO

CollectedItems belong to exactly one event and are replaced as a whole
every time the crew registers the stop's items.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean, DateTime, Enum as SAEnum, Float, ForeignKey,
    String, Text, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from coletaops.database import Base


class RunStatus(str, enum.Enum):
    EM_ANDAMENTO = "EM_ANDAMENTO"  # in progress
    CONCLUIDO = "CONCLUIDO"        # finished


class EventStatus(str, enum.Enum):
    PENDENTE = "PENDENTE"          # not visited yet
    EM_ANDAMENTO = "EM_ANDAMENTO"  # crew arrived
    COLETADO = "COLETADO"          # collected
    NAO_COLETADO = "NAO_COLETADO"  # skipped, with a reason

    @property
    def is_terminal(self) -> bool:
        return not EVENT_TRANSITIONS[self]

    def can_advance_to(self, target: "EventStatus") -> bool:
        return target in EVENT_TRANSITIONS[self]


EVENT_TRANSITIONS: dict[EventStatus, frozenset[EventStatus]] = {
    EventStatus.PENDENTE: frozenset({EventStatus.EM_ANDAMENTO}),
    EventStatus.EM_ANDAMENTO: frozenset({EventStatus.COLETADO, EventStatus.NAO_COLETADO}),
    EventStatus.COLETADO: frozenset(),
    EventStatus.NAO_COLETADO: frozenset(),
}


class CollectionRun(Base):
    __tablename__ = "collection_runs"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    assignment_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("route_assignments.id"), nullable=False, index=True
    )
    status: Mapped[RunStatus] = mapped_column(
        SAEnum(RunStatus, native_enum=False, length=20),
        default=RunStatus.EM_ANDAMENTO,
        index=True,
    )
    started_at: Mapped[datetime | None] = mapped_column(DateTime)
    ended_at: Mapped[datetime | None] = mapped_column(DateTime)
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)

    assignment = relationship("RouteAssignment", back_populates="runs")
    events = relationship(
        "CollectionEvent", back_populates="run", cascade="all, delete-orphan"
    )
    sorting_batches = relationship("SortingBatch", back_populates="run")


class CollectionEvent(Base):
    __tablename__ = "collection_events"
    __table_args__ = (
        UniqueConstraint("run_id", "stop_id", name="uq_collection_events_run_stop"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    run_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("collection_runs.id"), nullable=False, index=True
    )
    stop_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("route_stops.id"), nullable=False
    )
    status: Mapped[EventStatus] = mapped_column(
        SAEnum(EventStatus, native_enum=False, length=20),
        default=EventStatus.PENDENTE,
        index=True,
    )
    arrived_at: Mapped[datetime | None] = mapped_column(DateTime)
    departed_at: Mapped[datetime | None] = mapped_column(DateTime)
    notes: Mapped[str | None] = mapped_column(Text)
    skip_reason: Mapped[str | None] = mapped_column(String(255))

    # Where the crew was when it arrived (optional, from the phone's GPS)
    lat: Mapped[float | None] = mapped_column(Float)
    lng: Mapped[float | None] = mapped_column(Float)

    run = relationship("CollectionRun", back_populates="events")
    stop = relationship("RouteStop")
    items = relationship(
        "CollectedItem", back_populates="event", cascade="all, delete-orphan"
    )


class CollectedItem(Base):
    __tablename__ = "collected_items"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    event_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("collection_events.id"), nullable=False, index=True
    )
    material_type_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("material_types.id"), nullable=False
    )
    quantity: Mapped[float] = mapped_column(Float, nullable=False)
    unit: Mapped[str] = mapped_column(String(10), default="kg")
    is_estimated: Mapped[bool] = mapped_column(Boolean, default=True)

    event = relationship("CollectionEvent", back_populates="items")
    material_type = relationship("MaterialType")
