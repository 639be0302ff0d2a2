"""
L5 Orchestration — batch runner and selection controller.
"""

from myrpi.core.services.provision.orchestration.orchestrator import (  # noqa: F401
    BatchReport,
    ensure_privileged,
    run_batch,
    run_component,
)
from myrpi.core.services.provision.orchestration.selection import (  # noqa: F401
    ControllerResult,
    SelectionController,
    State,
)
