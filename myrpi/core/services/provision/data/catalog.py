"""
L0 Data — The component catalog.

The single source of truth the rest of the system iterates over.
Static, read-only, no I/O.  Order matters: components are installed
in ascending ``order`` and removed in descending ``order``, so a
runtime manager always exists before the runtimes it hosts and
outlives nothing that depends on it.
"""

from __future__ import annotations

from myrpi.core.config.loader import Settings
from myrpi.core.models.action import Operation
from myrpi.core.models.component import (
    ArchiveSpec,
    CloneSpec,
    Component,
    GitAliasSpec,
    PackageSpec,
    RepositorySpec,
    ScriptSpec,
    ShellConfigSpec,
)
from myrpi.core.services.provision.data import defaults


class UnknownComponent(KeyError):
    """Raised by ``Catalog.lookup`` for an id that is not in the catalog."""


DEFAULT_COMPONENTS: list[Component] = [
    Component(
        id="apt",
        label="apt packages",
        description="Command-line essentials (jq, yq, htop, ripgrep, etc.)",
        order=10,
        spec=PackageSpec(packages=list(defaults.APT_PACKAGES)),
    ),
    Component(
        id="gh",
        label="GitHub CLI (gh)",
        description="GitHub CLI from the official apt repository",
        order=20,
        spec=PackageSpec(
            packages=["gh"],
            repository=RepositorySpec(**defaults.GH_REPOSITORY),
        ),
    ),
    Component(
        id="neovim",
        label="neovim",
        description="Neovim release build in the install prefix",
        order=30,
        spec=ArchiveSpec(**defaults.NEOVIM_ARCHIVE),
    ),
    Component(
        id="lazyvim",
        label="LazyVim config",
        description="LazyVim starter configuration for neovim",
        order=40,
        after=["neovim"],
        spec=CloneSpec(**defaults.LAZYVIM_CLONE),
    ),
    Component(
        id="bat",
        label="bat",
        description="cat clone with syntax highlighting",
        order=50,
        spec=ArchiveSpec(**defaults.BAT_ARCHIVE),
    ),
    Component(
        id="fzf",
        label="fzf",
        description="Command-line fuzzy finder",
        order=60,
        spec=ArchiveSpec(**defaults.FZF_ARCHIVE),
    ),
    Component(
        id="eza",
        label="eza",
        description="Modern ls replacement",
        order=70,
        spec=ArchiveSpec(**defaults.EZA_ARCHIVE),
    ),
    Component(
        id="asdf",
        label="asdf (includes Node.js)",
        description="asdf version manager and the Node.js runtimes it manages",
        order=80,
        spec=ArchiveSpec(**defaults.ASDF_ARCHIVE),
    ),
    Component(
        id="atuin",
        label="atuin",
        description="Shell history sync and search",
        order=90,
        spec=ScriptSpec(**defaults.ATUIN_SCRIPT),
    ),
    Component(
        id="uv",
        label="uv (includes Python)",
        description="uv Python package manager and the Pythons it manages",
        order=100,
        spec=ScriptSpec(**defaults.UV_SCRIPT),
    ),
    Component(
        id="config",
        label="myrpi configuration",
        description="Shell environment file sourced from .bashrc",
        order=110,
        after=["apt", "fzf", "eza", "bat", "asdf", "atuin"],
        spec=ShellConfigSpec(
            marker=defaults.SHELL_MARKER,
            env_content=defaults.SHELL_ENV_CONTENT,
        ),
    ),
    Component(
        id="aliases",
        label="git aliases",
        description="Global git aliases for the invoking user",
        order=120,
        after=["fzf"],
        spec=GitAliasSpec(aliases=dict(defaults.GIT_ALIASES)),
    ),
]


class Catalog:
    """Ordered, read-only view over a set of components."""

    def __init__(self, components: list[Component]):
        self._components = sorted(components, key=lambda c: c.order)
        self._by_id = {c.id: c for c in self._components}

    def __len__(self) -> int:
        return len(self._components)

    def __contains__(self, component_id: object) -> bool:
        return component_id in self._by_id

    @property
    def ids(self) -> list[str]:
        return [c.id for c in self._components]

    def lookup(self, component_id: str) -> Component:
        """Return the component, or raise ``UnknownComponent``."""
        try:
            return self._by_id[component_id]
        except KeyError:
            raise UnknownComponent(component_id) from None

    def find(self, component_id: str) -> Component | None:
        return self._by_id.get(component_id)

    def all_components(self) -> list[Component]:
        """All components in install order."""
        return list(self._components)

    def for_operation(self, operation: Operation) -> list[Component]:
        """All components in the order ``operation`` must process them."""
        if operation == "uninstall":
            return list(reversed(self._components))
        return list(self._components)

    def ordered(self, components: list[Component], operation: Operation) -> list[Component]:
        """Sort an arbitrary subset into processing order for ``operation``."""
        ordered = sorted(components, key=lambda c: c.order)
        if operation == "uninstall":
            ordered.reverse()
        return ordered

    def menu_index(self) -> dict[str, str]:
        """Map 1-based menu numbers (as strings) to component ids."""
        return {str(i): c.id for i, c in enumerate(self._components, start=1)}


def validate_catalog(components: list[Component]) -> list[str]:
    """Check ids are unique and every ``after`` edge points backwards.

    Returns:
        List of error strings; empty when the catalog is consistent.
    """
    errors: list[str] = []
    by_id: dict[str, Component] = {}
    for component in components:
        if component.id in by_id:
            errors.append(f"Duplicate component id: {component.id}")
        by_id[component.id] = component

    for component in components:
        for dep in component.after:
            target = by_id.get(dep)
            if target is None:
                errors.append(f"{component.id}: depends on unknown component '{dep}'")
            elif target.order >= component.order:
                errors.append(
                    f"{component.id}: order {component.order} must be greater "
                    f"than '{dep}' ({target.order})"
                )
    return errors


def build_catalog(settings: Settings | None = None) -> Catalog:
    """Apply settings overrides to the default components."""
    if settings is None:
        return Catalog(DEFAULT_COMPONENTS)

    components: list[Component] = []
    for component in DEFAULT_COMPONENTS:
        spec = component.spec
        update: dict = {}

        if isinstance(spec, ArchiveSpec):
            if component.id in settings.versions:
                update["version"] = settings.versions[component.id]
            if component.id in settings.checksums:
                update["checksum"] = settings.checksums[component.id]
        elif isinstance(spec, ScriptSpec):
            if component.id in settings.checksums:
                update["sha256"] = settings.checksums[component.id]
        elif isinstance(spec, PackageSpec) and component.id == "apt":
            if settings.apt_packages is not None:
                update["packages"] = list(settings.apt_packages)
        elif isinstance(spec, ShellConfigSpec):
            update["rc_file"] = settings.rc_file
            update["config_dir"] = settings.config_dir
            update["directive"] = f"source ~/{settings.config_dir}/{spec.env_file}"

        if update:
            component = component.model_copy(update={"spec": spec.model_copy(update=update)})
        components.append(component)

    return Catalog(components)
