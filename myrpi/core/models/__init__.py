"""
Domain models — Pydantic types for the provisioner.

All models are re-exported here for convenient access:

    from myrpi.core.models import Component, ArchiveSpec, Receipt
"""

from myrpi.core.models.action import ErrorKind, Operation, Receipt
from myrpi.core.models.component import (
    ArchiveSpec,
    CloneSpec,
    Component,
    ComponentSpec,
    GitAliasSpec,
    PackageSpec,
    RepositorySpec,
    ScriptSpec,
    ShellConfigSpec,
)

__all__ = [
    # component.py
    "ArchiveSpec",
    "CloneSpec",
    "Component",
    "ComponentSpec",
    # action.py
    "ErrorKind",
    "GitAliasSpec",
    "Operation",
    "PackageSpec",
    "Receipt",
    "RepositorySpec",
    "ScriptSpec",
    "ShellConfigSpec",
]
