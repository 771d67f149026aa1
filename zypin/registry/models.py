"""Immutable catalog records produced by a registry discovery pass."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from types import ModuleType
from typing import Any, Mapping

from zypin.contracts import CAPABILITY_HEALTH, CAPABILITY_RUN, CAPABILITY_START


@dataclass(frozen=True)
class ProviderRecord:
    """One validated capability provider found on disk."""

    name: str
    full_name: str
    path: Path
    version: str
    capabilities: frozenset[str]
    templates: tuple[str, ...] = ()
    interface: ModuleType | None = field(default=None, compare=False, repr=False)

    @property
    def has_start(self) -> bool:
        return CAPABILITY_START in self.capabilities

    @property
    def has_run(self) -> bool:
        return CAPABILITY_RUN in self.capabilities

    @property
    def has_health(self) -> bool:
        return CAPABILITY_HEALTH in self.capabilities

    def start(self, options: Mapping[str, Any] | None = None) -> Any:
        """Invoke the provider's start operation; may return an awaitable."""
        if not self.has_start or self.interface is None:
            raise AttributeError(f"provider {self.name} has no start capability")
        return self.interface.start(dict(options or {}))


@dataclass(frozen=True)
class TemplateRecord:
    """One template bundle nested under a provider's templates directory."""

    name: str
    provider: str
    namespaced_name: str
    path: Path
    metadata: Mapping[str, Any]
    has_runner: bool
    description: str
