"""
Catalog import package.

Responsibilities:
- Read an oyster catalog CSV with pandas.
- Normalize its columns into the canonical oyster schema.
- Insert new oysters with their curated seed attributes.
"""
