"""In-memory provider and template catalog rebuilt from disk on demand."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from zypin.registry.loader import discover
from zypin.registry.models import ProviderRecord, TemplateRecord
from zypin.registry.templates import scan_templates

logger = logging.getLogger("zypin.registry.catalog")


class ProviderRegistry:
    """Catalog of discovered providers keyed by logical name and their templates."""

    def __init__(self, root_paths: Iterable[Path], *, autoload: bool = True) -> None:
        self.root_paths = [Path(path) for path in root_paths]
        self._providers: dict[str, ProviderRecord] = {}
        self._templates: dict[str, TemplateRecord] = {}
        if autoload:
            self.load()

    def load(self) -> None:
        """Run discovery and template scanning into the current catalog."""
        self._providers.update(discover(self.root_paths))
        for provider in self._providers.values():
            for template in scan_templates(provider):
                self._templates[template.namespaced_name] = template
        logger.info(
            "Registry loaded %d provider(s) and %d template(s)",
            len(self._providers),
            len(self._templates),
        )

    def reload(self) -> None:
        """Drop the catalog and rebuild it from scratch."""
        self._providers.clear()
        self._templates.clear()
        self.load()

    def providers(self) -> list[ProviderRecord]:
        return list(self._providers.values())

    def lookup(self, name: str) -> ProviderRecord | None:
        return self._providers.get(name)

    def templates(self) -> list[TemplateRecord]:
        return list(self._templates.values())

    def lookup_template(self, namespaced_name: str) -> TemplateRecord | None:
        return self._templates.get(namespaced_name)

    def templates_for(self, provider_name: str) -> list[TemplateRecord]:
        return [template for template in self._templates.values() if template.provider == provider_name]

    def template_identifiers(self) -> list[str]:
        return [template.namespaced_name for template in self._templates.values()]

    def __len__(self) -> int:
        return len(self._providers)

    def __contains__(self, name: object) -> bool:
        return name in self._providers
