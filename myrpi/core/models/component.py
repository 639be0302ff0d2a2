"""
Component model — what the catalog knows about one installable unit.

A Component pairs a stable id with exactly one installation spec.
The spec is a closed tagged variant discriminated on ``kind``; each
variant carries only the data its transition executor needs.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class RepositorySpec(BaseModel):
    """A third-party apt repository a package needs before install."""

    keyring_url: str
    keyring_path: str         # absolute, e.g. /usr/share/keyrings/x.gpg
    sources_path: str         # absolute, e.g. /etc/apt/sources.list.d/x.list
    sources_line: str         # the single "deb [...] url dist main" line


class PackageSpec(BaseModel):
    """Installed through the system package manager."""

    kind: Literal["package"] = "package"
    packages: list[str] = Field(default_factory=list)
    repository: RepositorySpec | None = None


class ArchiveSpec(BaseModel):
    """A checksum-verified release archive unpacked into the install prefix.

    ``url`` and ``checksum_url`` may contain ``{version}`` and ``{arch}``.
    ``members`` maps archive-relative paths (after stripping a single
    top-level directory) to prefix-relative destinations.
    """

    kind: Literal["archive"] = "archive"
    url: str
    version: str = ""
    arch_names: dict[str, str] = Field(default_factory=dict)
    checksum: str = ""        # pinned "algo:hex"
    checksum_url: str = ""    # publisher manifest
    members: dict[str, str] = Field(default_factory=dict)
    user_paths: list[str] = Field(default_factory=list)   # home-relative
    data_dirs: list[str] = Field(default_factory=list)    # home-relative, manager-owned
    post_install: list[list[str]] = Field(default_factory=list)


class ScriptSpec(BaseModel):
    """A remote installer script run as the actual user."""

    kind: Literal["script"] = "script"
    url: str
    args: list[str] = Field(default_factory=list)
    sha256: str = ""
    binaries: list[str] = Field(default_factory=list)     # home-relative
    user_paths: list[str] = Field(default_factory=list)   # home-relative
    data_dirs: list[str] = Field(default_factory=list)    # home-relative, manager-owned


class CloneSpec(BaseModel):
    """A git repository cloned into the user's home (editor starter configs)."""

    kind: Literal["clone"] = "clone"
    repo: str
    dest: str                                             # home-relative
    keep_git: bool = False
    user_paths: list[str] = Field(default_factory=list)   # home-relative


class ShellConfigSpec(BaseModel):
    """An env file in a dedicated config dir, sourced from the shell rc file."""

    kind: Literal["config"] = "config"
    config_dir: str = ".config/myrpi"
    env_file: str = "env"
    rc_file: str = ".bashrc"
    marker: str = "# Source myrpi environment"
    directive: str = "source ~/.config/myrpi/env"
    env_content: str = ""


class GitAliasSpec(BaseModel):
    """Aliases written to the actual user's global git configuration."""

    kind: Literal["git_alias"] = "git_alias"
    aliases: dict[str, str] = Field(default_factory=dict)


ComponentSpec = Annotated[
    Union[PackageSpec, ArchiveSpec, ScriptSpec, CloneSpec, ShellConfigSpec, GitAliasSpec],
    Field(discriminator="kind"),
]


class Component(BaseModel):
    """One named, independently installable and removable unit."""

    model_config = ConfigDict(frozen=True)

    id: str                   # stable across install and uninstall
    label: str = ""
    description: str = ""
    order: int = 0            # install ascending, uninstall descending
    after: list[str] = Field(default_factory=list)
    spec: ComponentSpec

    @property
    def kind(self) -> str:
        return self.spec.kind

    @property
    def display_name(self) -> str:
        return self.label or self.id
