"""FastAPI dependency injection utilities."""

from typing import Annotated

from fastapi import Depends

from app.core.catalog import GradeCatalog, get_catalog
from app.services.import_run import ImportRunRegistry

# Import runs live only for the lifetime of the process
_import_registry = ImportRunRegistry()


def get_import_registry() -> ImportRunRegistry:
    """Get the process-wide import run registry."""
    return _import_registry


def get_grade_catalog() -> GradeCatalog:
    """Get the configured grade catalog."""
    return get_catalog()


# Type aliases for dependency injection
ImportRegistry = Annotated[ImportRunRegistry, Depends(get_import_registry)]
Catalog = Annotated[GradeCatalog, Depends(get_grade_catalog)]
