import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from coletaops.config import settings
from coletaops.logging_config import configure_logging
from coletaops.middleware.exceptions import register_exception_handlers
from coletaops.middleware.tenant import TenantMiddleware
from coletaops.routers import (
    assignments,
    auth,
    collection_points,
    destinations,
    employees,
    health,
    material_types,
    reports,
    routes,
    runs,
    sorting_batches,
    stock,
    teams,
    users,
    vehicles,
)
from coletaops.utils.cache import close_redis

configure_logging()
logger = logging.getLogger("coletaops")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("ColetaOps starting (%s)", settings.environment)
    try:
        yield
    finally:
        await close_redis()
        logger.info("ColetaOps stopped")


app = FastAPI(
    title="ColetaOps",
    description="Waste collection logistics: routes, runs, sorting and stock",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Exception Handlers ───────────────────────────────────────
register_exception_handlers(app)

# ── Middleware (last added runs first) ───────────────────────
app.add_middleware(TenantMiddleware)

# CORS wraps everything so tenant 401s still carry CORS headers
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routers ──────────────────────────────────────────────────
# Public
app.include_router(health.router)
app.include_router(health.router, prefix="/api", include_in_schema=False)
app.include_router(auth.router, prefix="/api/auth", tags=["auth"])

# Workflow
app.include_router(assignments.router, prefix="/api/assignments", tags=["assignments"])
app.include_router(runs.router, prefix="/api/runs", tags=["runs"])
app.include_router(sorting_batches.router, prefix="/api/sorting-batches", tags=["sorting"])
app.include_router(stock.router, prefix="/api/stock", tags=["stock"])
app.include_router(reports.router, prefix="/api/reports", tags=["reports"])

# Catalog
app.include_router(material_types.router, prefix="/api/material-types", tags=["material-types"])
app.include_router(collection_points.router, prefix="/api/collection-points", tags=["collection-points"])
app.include_router(routes.router, prefix="/api/routes", tags=["routes"])
app.include_router(vehicles.router, prefix="/api/vehicles", tags=["vehicles"])
app.include_router(teams.router, prefix="/api/teams", tags=["teams"])
app.include_router(employees.router, prefix="/api/employees", tags=["employees"])
app.include_router(destinations.router, prefix="/api/destinations", tags=["destinations"])
app.include_router(users.router, prefix="/api/users", tags=["users"])
