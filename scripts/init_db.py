import argparse
import os
import sys
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

# Ensure repo root is on sys.path when running as a script (Windows-friendly).
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.msa.models import Base  # noqa: E402
from app.msa.modules.listings.models import Property  # noqa: E402
from app.msa.modules.listings.service import create_property  # noqa: E402

DEFAULT_LISTINGS = [
    {
        "title": "Gold Street Studio Flat",
        "address": "Gold Street, Northampton, NN1 1RS",
        "rent": 950,
        "bedrooms": 0,
        "bathrooms": 1,
        "square_footage": 450,
        "description": (
            "Stylish studio flat in the centre of Northampton, moments from shops, cafes and transport links. "
            "Open-plan living room and kitchen with appliances, bathroom with shower enclosure. Unfurnished."
        ),
        "amenities": [
            "Modern open-plan living",
            "Kitchen with appliances",
            "Bathroom with shower",
            "Unfurnished",
            "Central location",
            "Excellent transport links",
        ],
        "photos": ["/properties/1/main.jpg", "/properties/1/1.jpg", "/properties/1/floorplan.png"],
        "availability": "sold",
        "epc_rating": "C",
        "council_tax_band": "B",
    },
    {
        "title": "Talbot Road Studio Apartment",
        "address": "Talbot Road, Northampton, NN1 4JB",
        "rent": 725,
        "bedrooms": 0,
        "bathrooms": 1,
        "square_footage": 380,
        "description": (
            "Well-maintained studio apartment on Talbot Road, ideal for professionals or students. "
            "Unfurnished and ready for immediate occupancy."
        ),
        "amenities": [
            "Unfurnished",
            "Central heating",
            "Double glazing",
            "Shared garden",
            "On-street parking",
            "Close to transport links",
        ],
        "photos": [],
        "availability": "sold",
        "epc_rating": "D",
        "council_tax_band": "A",
    },
]


@contextmanager
def _session_scope(database_url: str):
    engine = create_engine(database_url, future=True)
    sm = sessionmaker(bind=engine, class_=Session, autoflush=False, autocommit=False, expire_on_commit=False, future=True)
    s: Session = sm()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()


def create_tables(*, database_url: str) -> None:
    """Local development shortcut; deployments run `alembic upgrade head` instead."""
    engine = create_engine(database_url, future=True)
    Base.metadata.create_all(bind=engine)


def seed_only(*, database_url: str | None = None) -> int:
    """
    Seed the default listings in an idempotent way (matched on title + address).
    Never touches listings that already exist. Returns the number created.
    """
    db_url = (database_url or os.environ.get("DATABASE_URL") or "sqlite:///msa.db").strip()
    created = 0
    with _session_scope(db_url) as s:
        for listing in DEFAULT_LISTINGS:
            exists = (
                s.query(Property)
                .filter(Property.title == listing["title"], Property.address == listing["address"])
                .one_or_none()
            )
            if exists:
                continue
            create_property(s, listing, actor="seed")
            created += 1

    print(f"Seeded {created} listing(s).")
    return created


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed the MSA Properties database.")
    parser.add_argument("--create-tables", action="store_true", help="create tables directly (local development)")
    args = parser.parse_args()

    db_url = (os.environ.get("DATABASE_URL") or "sqlite:///msa.db").strip()
    if args.create_tables:
        create_tables(database_url=db_url)
        print("Tables created.")
    seed_only(database_url=db_url)


if __name__ == "__main__":
    main()
