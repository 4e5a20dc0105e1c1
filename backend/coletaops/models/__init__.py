"""Aggregate model imports for Alembic auto-detection and relationship resolution."""

# Tenancy / auth
from coletaops.models.organization import Organization  # noqa: F401
from coletaops.models.user import User, UserRole  # noqa: F401
from coletaops.models.employee import Employee  # noqa: F401

# Catalog
from coletaops.models.material_type import MaterialType  # noqa: F401
from coletaops.models.collection_point import CollectionPoint  # noqa: F401
from coletaops.models.route import Route, RouteStop  # noqa: F401
from coletaops.models.vehicle import Vehicle  # noqa: F401
from coletaops.models.team import Team, TeamMember  # noqa: F401
from coletaops.models.destination import Destination, DestinationType  # noqa: F401

# Workflow
from coletaops.models.assignment import RouteAssignment  # noqa: F401
from coletaops.models.collection_run import (  # noqa: F401
    CollectedItem,
    CollectionEvent,
    CollectionRun,
    EventStatus,
    RunStatus,
)
from coletaops.models.sorting_batch import QualityGrade, SortedItem, SortingBatch  # noqa: F401
from coletaops.models.stock import MovementType, StockLot, StockMovement  # noqa: F401

# Audit
from coletaops.models.activity_log import ActivityLog  # noqa: F401
