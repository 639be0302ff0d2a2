"""
Provisioning service — package re-exports.

Each symbol lives in its single-responsibility module inside the
appropriate onion layer (data → domain → detection → execution →
orchestration)::

    from myrpi.core.services.provision import run_batch
"""

# ── L0: Data ──
from myrpi.core.services.provision.data.catalog import (  # noqa: F401
    Catalog,
    build_catalog,
    validate_catalog,
)

# ── L3: Detection ──
from myrpi.core.services.provision.detection.presence import (  # noqa: F401
    is_absent,
    is_present,
    presence_report,
)

# ── L4: Execution ──
from myrpi.core.services.provision.execution.install import install_component  # noqa: F401
from myrpi.core.services.provision.execution.uninstall import uninstall_component  # noqa: F401

# ── Context ──
from myrpi.core.services.provision.context import ExecutionContext, create_context  # noqa: F401

# ── L5: Orchestration ──
from myrpi.core.services.provision.orchestration.orchestrator import (  # noqa: F401
    BatchReport,
    ensure_privileged,
    run_batch,
)
from myrpi.core.services.provision.orchestration.selection import SelectionController  # noqa: F401
