"""
L1 Domain — Selection token parsing (pure, no I/O).

Turns ``"neovim,bat"``, ``"all"`` or menu numbers like ``"3,5"`` into
an ordered list of components plus the tokens that matched nothing.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from myrpi.core.models.action import Operation
from myrpi.core.models.component import Component
from myrpi.core.services.provision.data.catalog import Catalog

ALL_TOKEN = "all"


@dataclass
class Selection:
    """Result of parsing one selection string."""

    components: list[Component] = field(default_factory=list)
    invalid: list[str] = field(default_factory=list)
    is_all: bool = False

    @property
    def bulk(self) -> bool:
        """Whether the selection needs a confirmation before running."""
        return self.is_all or len(self.components) > 1

    @property
    def empty(self) -> bool:
        return not self.components


def split_tokens(raw: str) -> list[str]:
    """Split on commas and whitespace, dropping empties."""
    return [t for t in raw.replace(",", " ").split() if t]


def parse_selection(
    raw: str,
    catalog: Catalog,
    operation: Operation,
    *,
    allow_numbers: bool = False,
) -> Selection:
    """Resolve ``raw`` against ``catalog``.

    Args:
        raw: Comma-separated ids, ``all``, or menu numbers.
        catalog: The component catalog.
        operation: Decides processing order (uninstall is reversed).
        allow_numbers: Accept 1-based menu numbers (interactive menu only).

    Returns:
        Selection with de-duplicated components in processing order.
    """
    selection = Selection()
    numbers = catalog.menu_index() if allow_numbers else {}
    picked: dict[str, Component] = {}

    for token in split_tokens(raw.strip()):
        key = token.lower()
        if key == ALL_TOKEN:
            selection.is_all = True
            continue
        component_id = numbers.get(key, key)
        component = catalog.find(component_id)
        if component is None:
            selection.invalid.append(token)
            continue
        picked.setdefault(component.id, component)

    if selection.is_all:
        selection.components = catalog.for_operation(operation)
    else:
        selection.components = catalog.ordered(list(picked.values()), operation)
    return selection
