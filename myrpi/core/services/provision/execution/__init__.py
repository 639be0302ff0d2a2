"""
L4 Execution — ``__init__.py`` re-exports all execution functions.

These functions perform side effects: subprocess calls, downloads,
file writes into the install prefix and the user's home.
"""

from myrpi.core.services.provision.execution.archive import (  # noqa: F401
    extract_archive,
    place_members,
    remove_any,
)
from myrpi.core.services.provision.execution.download import (  # noqa: F401
    VerificationRecord,
    download_file,
    parse_checksum_manifest,
    resolve_expected_digest,
    verify_checksum,
    verify_or_raise,
)
from myrpi.core.services.provision.execution.git_config import (  # noqa: F401
    GitConfig,
    install_aliases,
    remove_aliases,
)
from myrpi.core.services.provision.execution.install import install_component  # noqa: F401
from myrpi.core.services.provision.execution.package_manager import AptPackageManager  # noqa: F401
from myrpi.core.services.provision.execution.shell_config import (  # noqa: F401
    add_marked_block,
    remove_marked_block,
)
from myrpi.core.services.provision.execution.subprocess_runner import run_subprocess  # noqa: F401
from myrpi.core.services.provision.execution.uninstall import (  # noqa: F401
    remove_path,
    uninstall_component,
)
