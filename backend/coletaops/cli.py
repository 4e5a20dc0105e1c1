"""Management CLI.

Usage:
    python -m coletaops.cli create-tables   # Create every table (development, no Alembic)
    python -m coletaops.cli seed            # Demo organization, material types and users
"""

import sys

from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session

from coletaops.auth.password import hash_password
from coletaops.config import settings
from coletaops.database import Base
from coletaops.models import MaterialType, Organization, User, UserRole

SEED_ORG_SLUG = "ecorecicla"
SEED_PASSWORD = "admin123"

# name, category, default unit, requires sorting, allows contamination, reference price
SEED_MATERIALS = [
    ("Paper/Cardboard", "PAPEL", "kg", True, False, 0.50),
    ("PET", "PLASTICO", "kg", True, False, 1.20),
    ("HDPE", "PLASTICO", "kg", True, False, 1.00),
    ("PP", "PLASTICO", "kg", True, False, 0.80),
    ("PVC", "PLASTICO", "kg", True, False, 0.60),
    ("Glass", "VIDRO", "kg", True, False, 0.15),
    ("Aluminium", "METAL", "kg", True, False, 5.00),
    ("Iron/Steel", "METAL", "kg", True, False, 0.40),
    ("Copper", "METAL", "kg", True, False, 25.00),
    ("Organic", "ORGANICO", "kg", False, True, 0.05),
    ("Reject", "REJEITO", "kg", False, True, 0.0),
    ("E-waste", "ELETRONICO", "un", True, False, 2.00),
    ("Cooking oil", "OLEO", "L", False, False, 1.50),
    ("EPS", "OUTROS", "kg", True, False, 0.30),
    ("Carton", "OUTROS", "kg", True, False, 0.25),
]

SEED_USERS = [
    ("admin@ecorecicla.com", "Administrator", UserRole.ADMIN),
    ("gestor@ecorecicla.com", "Carlos Gestor", UserRole.GESTOR_OPERACAO),
    ("almoxarife@ecorecicla.com", "Ana Almoxarife", UserRole.ALMOXARIFE),
    ("supervisor@ecorecicla.com", "Pedro Supervisor", UserRole.SUPERVISOR),
    ("coletor@ecorecicla.com", "João Coletor", UserRole.COLETOR),
    ("triagem@ecorecicla.com", "Maria Triagem", UserRole.TRIAGEM),
    ("visualizador@ecorecicla.com", "Rita Visualizador", UserRole.VISUALIZADOR),
]


def create_tables():
    engine = create_engine(settings.database_url_sync)
    Base.metadata.create_all(engine)
    print(f"  {len(Base.metadata.tables)} table(s) ready")


def seed_demo(session: Session) -> Organization:
    """Insert the demo data; rows that already exist are left untouched."""
    org = session.scalar(select(Organization).where(Organization.slug == SEED_ORG_SLUG))
    if org is None:
        org = Organization(name="EcoRecicla Ltda", slug=SEED_ORG_SLUG)
        session.add(org)
        session.flush()
        print(f"  Organization created: {org.name}")

    existing = set(
        session.scalars(select(MaterialType.name).where(MaterialType.org_id == org.id))
    )
    created = 0
    for name, category, unit, requires_sorting, allows_contamination, price in SEED_MATERIALS:
        if name in existing:
            continue
        session.add(MaterialType(
            org_id=org.id,
            name=name,
            category=category,
            default_unit=unit,
            requires_sorting=requires_sorting,
            allows_contamination=allows_contamination,
            reference_price=price,
        ))
        created += 1
    print(f"  Material types created: {created}")

    hashed = hash_password(SEED_PASSWORD)
    created = 0
    for email, name, role in SEED_USERS:
        if session.scalar(select(User.id).where(User.email == email)):
            continue
        session.add(User(
            email=email, hashed_password=hashed, name=name, role=role, org_id=org.id,
        ))
        created += 1
    print(f"  Users created: {created} (password: {SEED_PASSWORD})")
    return org


def seed():
    engine = create_engine(settings.database_url_sync)
    with Session(engine) as session:
        seed_demo(session)
        session.commit()


if __name__ == "__main__":
    cmd = sys.argv[1] if len(sys.argv) > 1 else ""
    if cmd == "create-tables":
        create_tables()
    elif cmd == "seed":
        seed()
    else:
        print("Usage: python -m coletaops.cli [create-tables|seed]")
