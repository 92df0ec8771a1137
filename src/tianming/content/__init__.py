"""Static game content: JSON catalogs validated with pydantic."""

from tianming.content.loader import CATALOG_FILES, build_catalog, load_catalog, validate_references

__all__ = ["CATALOG_FILES", "build_catalog", "load_catalog", "validate_references"]
