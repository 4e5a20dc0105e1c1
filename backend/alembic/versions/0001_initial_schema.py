"""Initial schema: organizations, catalog, collection workflow and stock.

Revision ID: 0001
Revises: (none)
Create Date: 2026-10-19

Run with:
    alembic upgrade head
"""

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

from alembic import op
import sqlalchemy as sa


def _id():
    return sa.Column("id", sa.String(36), primary_key=True)


def _org_fk():
    return sa.Column(
        "org_id", sa.String(36), sa.ForeignKey("organizations.id"), nullable=False, index=True
    )


def upgrade() -> None:
    # ── Tenancy / auth ───────────────────────────────────────

    op.create_table(
        "organizations",
        _id(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(100), nullable=False, unique=True, index=True),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
    )

    op.create_table(
        "employees",
        _id(),
        _org_fk(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("cpf", sa.String(20)),
        sa.Column("phone", sa.String(30)),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
    )

    op.create_table(
        "users",
        _id(),
        sa.Column("email", sa.String(255), nullable=False, unique=True, index=True),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), server_default="VISUALIZADOR"),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true()),
        _org_fk(),
        sa.Column("employee_id", sa.String(36), sa.ForeignKey("employees.id")),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
    )

    # ── Catalog ──────────────────────────────────────────────

    op.create_table(
        "material_types",
        _id(),
        _org_fk(),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("category", sa.String(50)),
        sa.Column("default_unit", sa.String(10), server_default="kg"),
        sa.Column("requires_sorting", sa.Boolean(), server_default=sa.true()),
        sa.Column("allows_contamination", sa.Boolean(), server_default=sa.false()),
        sa.Column("reference_price", sa.Float()),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.UniqueConstraint("org_id", "name", name="uq_material_types_org_name"),
    )

    op.create_table(
        "collection_points",
        _id(),
        _org_fk(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("address", sa.String(500), nullable=False),
        sa.Column("lat", sa.Float()),
        sa.Column("lng", sa.Float()),
        sa.Column("type", sa.String(30)),
        sa.Column("contact", sa.String(255)),
        sa.Column("phone", sa.String(30)),
        sa.Column("notes", sa.Text()),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
    )

    op.create_table(
        "routes",
        _id(),
        _org_fk(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
    )

    op.create_table(
        "route_stops",
        _id(),
        sa.Column("route_id", sa.String(36), sa.ForeignKey("routes.id"), nullable=False, index=True),
        sa.Column("point_id", sa.String(36), sa.ForeignKey("collection_points.id"), nullable=False),
        sa.Column("order_index", sa.Integer(), nullable=False),
        sa.Column("planned_window", sa.String(50)),
        sa.Column("notes", sa.Text()),
        sa.UniqueConstraint("route_id", "order_index", name="uq_route_stops_route_order"),
    )

    op.create_table(
        "vehicles",
        _id(),
        _org_fk(),
        sa.Column("plate", sa.String(20), nullable=False),
        sa.Column("model", sa.String(100)),
        sa.Column("capacity_kg", sa.Float()),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
    )

    op.create_table(
        "teams",
        _id(),
        _org_fk(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
    )

    op.create_table(
        "team_members",
        _id(),
        sa.Column("team_id", sa.String(36), sa.ForeignKey("teams.id"), nullable=False, index=True),
        sa.Column("employee_id", sa.String(36), sa.ForeignKey("employees.id"), nullable=False),
        sa.Column("role", sa.String(50)),
        sa.UniqueConstraint("team_id", "employee_id", name="uq_team_members_team_employee"),
    )

    op.create_table(
        "destinations",
        _id(),
        _org_fk(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("address", sa.String(500)),
        sa.Column("contact", sa.String(255)),
        sa.Column("phone", sa.String(30)),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
    )

    # ── Collection workflow ──────────────────────────────────

    op.create_table(
        "route_assignments",
        _id(),
        sa.Column("route_id", sa.String(36), sa.ForeignKey("routes.id"), nullable=False, index=True),
        sa.Column("team_id", sa.String(36), sa.ForeignKey("teams.id"), nullable=False, index=True),
        sa.Column("vehicle_id", sa.String(36), sa.ForeignKey("vehicles.id"), nullable=False),
        sa.Column("date", sa.Date(), nullable=False, index=True),
        sa.Column("shift", sa.String(10)),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
    )

    op.create_table(
        "collection_runs",
        _id(),
        sa.Column(
            "assignment_id", sa.String(36), sa.ForeignKey("route_assignments.id"),
            nullable=False, index=True,
        ),
        sa.Column("status", sa.String(20), server_default="EM_ANDAMENTO", index=True),
        sa.Column("started_at", sa.DateTime()),
        sa.Column("ended_at", sa.DateTime()),
        sa.Column("notes", sa.Text()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), index=True),
    )

    op.create_table(
        "collection_events",
        _id(),
        sa.Column("run_id", sa.String(36), sa.ForeignKey("collection_runs.id"), nullable=False, index=True),
        sa.Column("stop_id", sa.String(36), sa.ForeignKey("route_stops.id"), nullable=False),
        sa.Column("status", sa.String(20), server_default="PENDENTE", index=True),
        sa.Column("arrived_at", sa.DateTime()),
        sa.Column("departed_at", sa.DateTime()),
        sa.Column("notes", sa.Text()),
        sa.Column("skip_reason", sa.String(255)),
        sa.Column("lat", sa.Float()),
        sa.Column("lng", sa.Float()),
        sa.UniqueConstraint("run_id", "stop_id", name="uq_collection_events_run_stop"),
    )

    op.create_table(
        "collected_items",
        _id(),
        sa.Column(
            "event_id", sa.String(36), sa.ForeignKey("collection_events.id"),
            nullable=False, index=True,
        ),
        sa.Column("material_type_id", sa.String(36), sa.ForeignKey("material_types.id"), nullable=False),
        sa.Column("quantity", sa.Float(), nullable=False),
        sa.Column("unit", sa.String(10), server_default="kg"),
        sa.Column("is_estimated", sa.Boolean(), server_default=sa.true()),
    )

    # ── Sorting ──────────────────────────────────────────────

    op.create_table(
        "sorting_batches",
        _id(),
        sa.Column("run_id", sa.String(36), sa.ForeignKey("collection_runs.id"), nullable=False, index=True),
        sa.Column("sorted_by", sa.String(36), nullable=False),
        sa.Column("is_closed", sa.Boolean(), server_default=sa.false(), index=True),
        sa.Column("notes", sa.Text()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), index=True),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
    )

    op.create_table(
        "sorted_items",
        _id(),
        sa.Column(
            "batch_id", sa.String(36), sa.ForeignKey("sorting_batches.id"),
            nullable=False, index=True,
        ),
        sa.Column("material_type_id", sa.String(36), sa.ForeignKey("material_types.id"), nullable=False),
        sa.Column("weight_kg", sa.Float(), nullable=False),
        sa.Column("quality_grade", sa.String(1), server_default="B"),
        sa.Column("contamination_pct", sa.Float()),
        sa.Column("contamination_note", sa.Text()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
    )

    # ── Stock ────────────────────────────────────────────────

    op.create_table(
        "stock_lots",
        _id(),
        _org_fk(),
        sa.Column(
            "material_type_id", sa.String(36), sa.ForeignKey("material_types.id"),
            nullable=False, index=True,
        ),
        sa.Column("source_batch_id", sa.String(36), sa.ForeignKey("sorting_batches.id"), index=True),
        sa.Column("total_kg", sa.Float(), nullable=False),
        sa.Column("available_kg", sa.Float(), nullable=False),
        sa.Column("quality_grade", sa.String(1)),
        sa.Column("origin_note", sa.String(255)),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), index=True),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
    )

    op.create_table(
        "stock_movements",
        _id(),
        sa.Column("lot_id", sa.String(36), sa.ForeignKey("stock_lots.id"), nullable=False, index=True),
        sa.Column("type", sa.String(10), nullable=False, index=True),
        sa.Column("quantity_kg", sa.Float(), nullable=False),
        sa.Column("destination_id", sa.String(36), sa.ForeignKey("destinations.id")),
        sa.Column("vehicle_id", sa.String(36), sa.ForeignKey("vehicles.id")),
        sa.Column("invoice_ref", sa.String(100)),
        sa.Column("notes", sa.Text()),
        sa.Column("moved_by", sa.String(36), nullable=False),
        sa.Column("moved_at", sa.DateTime(), server_default=sa.func.now(), index=True),
    )

    # ── Audit ────────────────────────────────────────────────

    op.create_table(
        "activity_logs",
        _id(),
        _org_fk(),
        sa.Column("user_id", sa.String(36), nullable=False, index=True),
        sa.Column("user_name", sa.String(255), nullable=False),
        sa.Column("action", sa.String(50), nullable=False, index=True),
        sa.Column("entity_type", sa.String(50), nullable=False, index=True),
        sa.Column("entity_id", sa.String(36)),
        sa.Column("summary", sa.Text()),
        sa.Column("details", sa.JSON()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False, index=True),
    )


def downgrade() -> None:
    for table in (
        "activity_logs",
        "stock_movements",
        "stock_lots",
        "sorted_items",
        "sorting_batches",
        "collected_items",
        "collection_events",
        "collection_runs",
        "route_assignments",
        "destinations",
        "team_members",
        "teams",
        "vehicles",
        "route_stops",
        "routes",
        "collection_points",
        "material_types",
        "users",
        "employees",
        "organizations",
    ):
        op.drop_table(table)
