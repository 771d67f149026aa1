"""Template discovery under each provider's templates directory."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from zypin.contracts import (
    NAMESPACE_SEPARATOR,
    TEMPLATE_DESCRIPTOR,
    TEMPLATE_RUNNER,
    TEMPLATES_DIR,
)
from zypin.errors import TemplateError
from zypin.registry.models import ProviderRecord, TemplateRecord

logger = logging.getLogger("zypin.registry.templates")


def namespaced_name(provider_name: str, template_name: str) -> str:
    return f"{provider_name}{NAMESPACE_SEPARATOR}{template_name}"


def validate_template(template_path: Path) -> None:
    """Require both the descriptor and the runner entry point."""
    if not (template_path / TEMPLATE_DESCRIPTOR).is_file():
        raise TemplateError(f"{template_path}: missing {TEMPLATE_DESCRIPTOR}")
    if not (template_path / TEMPLATE_RUNNER).is_file():
        raise TemplateError(f"{template_path}: missing {TEMPLATE_RUNNER}")


def read_template_metadata(descriptor: Path, identifier: str) -> dict[str, Any]:
    """Parse descriptor JSON; unreadable or non-object content yields {}."""
    try:
        raw = json.loads(descriptor.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.warning("Error reading template metadata for %s: %s", identifier, exc)
        return {}
    if not isinstance(raw, dict):
        logger.warning("Template metadata for %s is not an object; ignoring", identifier)
        return {}
    return raw


def load_template(provider_name: str, template_name: str, template_path: Path) -> TemplateRecord:
    validate_template(template_path)
    identifier = namespaced_name(provider_name, template_name)
    metadata = read_template_metadata(template_path / TEMPLATE_DESCRIPTOR, identifier)
    description = metadata.get("description")
    if not isinstance(description, str) or not description.strip():
        description = f"{provider_name} {template_name} template"
    return TemplateRecord(
        name=template_name,
        provider=provider_name,
        namespaced_name=identifier,
        path=template_path,
        metadata=metadata,
        has_runner=(template_path / TEMPLATE_RUNNER).is_file(),
        description=description,
    )


def scan_templates(provider: ProviderRecord) -> list[TemplateRecord]:
    """Return valid templates bundled with a provider. Never raises."""
    templates_dir = provider.path / TEMPLATES_DIR
    if not templates_dir.is_dir():
        return []
    try:
        entries = sorted(
            (entry for entry in templates_dir.iterdir() if entry.is_dir()),
            key=lambda entry: entry.name,
        )
    except OSError as exc:
        logger.error("Error scanning templates for plugin %s: %s", provider.name, exc)
        return []

    records: list[TemplateRecord] = []
    for entry in entries:
        try:
            records.append(load_template(provider.name, entry.name, entry))
        except TemplateError as exc:
            logger.debug("Skipping template: %s", exc)
        except OSError as exc:
            logger.error("Error loading template %s: %s", namespaced_name(provider.name, entry.name), exc)
    return records
