"""
L0 Data — ``__init__.py`` re-exports the catalog and its defaults.

Pure data, no I/O.
"""

from myrpi.core.services.provision.data.catalog import (  # noqa: F401
    DEFAULT_COMPONENTS,
    Catalog,
    UnknownComponent,
    build_catalog,
    validate_catalog,
)
