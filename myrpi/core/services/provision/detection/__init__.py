"""
L3 Detection — ``__init__.py`` re-exports all detection functions.

These functions READ system state but never WRITE.
"""

from myrpi.core.services.provision.detection.presence import (  # noqa: F401
    binary_paths,
    is_absent,
    is_present,
    owned_paths,
    presence_report,
    presence_state,
)
from myrpi.core.services.provision.detection.system_deps import (  # noqa: F401
    is_pkg_installed,
)
