"""
L1 Domain — ``__init__.py`` re-exports all pure domain functions.

Pure functions: no I/O, no subprocess, no filesystem.
"""

from myrpi.core.services.provision.domain.marked_block import (  # noqa: F401
    add_block,
    has_block,
    has_remnant,
    normalize_directive,
    normalize_marker,
    remove_block,
)
from myrpi.core.services.provision.domain.selection import (  # noqa: F401
    ALL_TOKEN,
    Selection,
    parse_selection,
    split_tokens,
)
