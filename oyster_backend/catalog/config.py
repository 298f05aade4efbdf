"""
Configuration for the oyster catalog import.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


@dataclass(frozen=True)
class CatalogConfig:
    csv_path: Path = Path(os.getenv("OYSTER_CATALOG_CSV", "data/oysters.csv"))


DEFAULT_CATALOG_CONFIG = CatalogConfig()
