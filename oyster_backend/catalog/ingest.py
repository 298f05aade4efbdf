from __future__ import annotations

import logging
from typing import List

import pandas as pd
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..attributes import validate_attributes
from ..db.models import ATTRIBUTES, Item
from ..db.session import atomic
from .config import DEFAULT_CATALOG_CONFIG, CatalogConfig

logger = logging.getLogger(__name__)


CANONICAL_COLUMNS: List[str] = ["name", "origin", "species", *ATTRIBUTES]
REQUIRED_COLUMNS: frozenset[str] = frozenset({"name", *ATTRIBUTES})

# Alternative spellings seen in catalog exports, canonical name first
COLUMN_ALIASES: dict[str, List[str]] = {
    "name": ["name", "oyster", "oyster_name"],
    "origin": ["origin", "location", "region"],
    "species": ["species"],
    "size": ["size"],
    "body": ["body"],
    "sweet_brininess": ["sweet_brininess", "sweetBrininess", "sweet_briny", "brininess"],
    "flavorfulness": ["flavorfulness", "flavor"],
    "creaminess": ["creaminess", "cream"],
}


def normalize_catalog(df: pd.DataFrame) -> pd.DataFrame:
    """Map raw catalog columns onto ``CANONICAL_COLUMNS``."""

    def _first_present(columns: List[str]) -> str | None:
        for col in columns:
            if col in df.columns:
                return col
        return None

    canonical = pd.DataFrame(index=df.index)
    for column in CANONICAL_COLUMNS:
        source = _first_present(COLUMN_ALIASES[column])
        if source is None and column in REQUIRED_COLUMNS:
            raise KeyError(f"Catalog is missing required column: {column}")
        if column in ATTRIBUTES:
            canonical[column] = pd.to_numeric(df[source], errors="coerce")
        elif source is not None:
            canonical[column] = df[source].astype("string").str.strip()
        else:
            canonical[column] = pd.NA

    canonical = canonical.dropna(subset=["name", *ATTRIBUTES])
    return canonical.drop_duplicates(subset=["name"], keep="first")


def _optional(value) -> str | None:
    return None if pd.isna(value) else str(value)


def run_import(db: Session, config: CatalogConfig = DEFAULT_CATALOG_CONFIG) -> int:
    """
    Load the oyster catalog CSV into the database.

    Steps:
    - Read and normalize the CSV.
    - Skip oysters whose name already exists.
    - Validate every seed attribute before writing anything.
    - Insert the remaining oysters in one transaction.
    """
    catalog = normalize_catalog(pd.read_csv(config.csv_path))

    existing = set(db.execute(select(Item.name)).scalars())
    new_rows = catalog[~catalog["name"].isin(existing)]

    records = new_rows.to_dict(orient="records")
    for record in records:
        validate_attributes({name: record[name] for name in ATTRIBUTES})

    with atomic(db):
        for record in records:
            db.add(Item(
                name=str(record["name"]),
                origin=_optional(record["origin"]),
                species=_optional(record["species"]),
                **{name: float(record[name]) for name in ATTRIBUTES},
            ))

    logger.info(
        "Imported %d oysters from %s (%d already present)",
        len(records), config.csv_path, len(catalog) - len(records),
    )
    return len(records)


if __name__ == "__main__":
    from ..db.models import Base
    from ..db.session import SessionLocal, engine

    Base.metadata.create_all(bind=engine)
    with SessionLocal() as session:
        created = run_import(session)
    print(f"Import complete. {created} oysters added from {DEFAULT_CATALOG_CONFIG.csv_path}")
