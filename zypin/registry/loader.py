"""Provider discovery: import candidate entry points and validate their interface."""

from __future__ import annotations

import hashlib
import importlib.util
import logging
import sys
from pathlib import Path
from types import ModuleType
from typing import Iterable, Iterator

from zypin.contracts import (
    NAMESPACE_SEPARATOR,
    PROVIDER_ENTRY_POINT,
    SCOPE_PREFIX,
    SUPPORTED_CAPABILITIES,
)
from zypin.errors import ProviderLoadError, ProviderValidationError, ZypinError
from zypin.registry.models import ProviderRecord

logger = logging.getLogger("zypin.registry.loader")


def strip_namespace(full_name: str) -> str:
    """Return logical name with any leading `@scope/` prefix removed."""
    if full_name.startswith(SCOPE_PREFIX) and NAMESPACE_SEPARATOR in full_name:
        return full_name.split(NAMESPACE_SEPARATOR, 1)[1]
    return full_name


def _is_candidate_dir(entry: Path) -> bool:
    try:
        return entry.is_dir() or entry.is_symlink()
    except OSError:
        return False


def _has_entry_point(path: Path) -> bool:
    try:
        return (path / PROVIDER_ENTRY_POINT).exists()
    except OSError as exc:
        logger.warning("Cannot read provider candidate %s: %s", path, exc)
        return False


def _is_root_dir(path: Path) -> bool:
    try:
        return path.is_dir()
    except OSError as exc:
        logger.warning("Cannot read provider root %s: %s", path, exc)
        return False


def _list_dir(path: Path) -> list[Path]:
    try:
        return sorted(path.iterdir(), key=lambda item: item.name)
    except OSError as exc:
        logger.debug("Cannot read provider root %s: %s", path, exc)
        return []


def iter_candidates(root: Path) -> Iterator[tuple[str, Path]]:
    """Yield (full name, path) for immediate provider subdirectories of root.

    A subdirectory named `@scope` without its own entry point is treated as a
    scope folder and its children are yielded as `@scope/child`.
    """
    for entry in _list_dir(root):
        if not _is_candidate_dir(entry):
            continue
        is_scope = entry.name.startswith(SCOPE_PREFIX) and not _has_entry_point(entry)
        if not is_scope:
            yield entry.name, entry
            continue
        for child in _list_dir(entry):
            if _is_candidate_dir(child):
                yield f"{entry.name}{NAMESPACE_SEPARATOR}{child.name}", child


def _module_name_for(path: Path) -> str:
    digest = hashlib.sha256(str(path.resolve()).encode("utf-8")).hexdigest()[:16]
    return f"zypin_provider_{digest}"


def load_provider_module(full_name: str, path: Path) -> ModuleType:
    """Import the provider entry point under a private module name."""
    entry_point = path / PROVIDER_ENTRY_POINT
    if not entry_point.is_file():
        raise ProviderLoadError(f"{full_name}: missing {PROVIDER_ENTRY_POINT}")

    module_name = _module_name_for(path)
    spec = importlib.util.spec_from_file_location(module_name, entry_point)
    if spec is None or spec.loader is None:
        raise ProviderLoadError(f"{full_name}: could not create module spec for {entry_point}")

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except (Exception, SystemExit) as exc:
        sys.modules.pop(module_name, None)
        raise ProviderLoadError(f"{full_name}: failed to import {entry_point}: {exc}") from exc
    return module


def _non_empty_str(value: object) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _declared(value: object) -> bool:
    return value is not None and value is not False and bool(str(value).strip())


def validate_interface(interface: object, full_name: str) -> frozenset[str]:
    """Return the provider's capability set or raise ProviderValidationError."""
    name = getattr(interface, "name", None)
    version = getattr(interface, "version", None)
    if not _non_empty_str(name) or not _declared(version):
        raise ProviderValidationError(
            f"Plugin {full_name} missing required properties (name, version)"
        )

    capabilities = frozenset(
        capability
        for capability in SUPPORTED_CAPABILITIES
        if callable(getattr(interface, capability, None))
    )
    if not capabilities:
        raise ProviderValidationError(
            f"Plugin {full_name} has no capabilities (start, run, or health)"
        )
    return capabilities


def _declared_templates(interface: object) -> tuple[str, ...]:
    raw = getattr(interface, "templates", None)
    if not isinstance(raw, (list, tuple)):
        return ()
    return tuple(str(item) for item in raw if str(item).strip())


def load_provider(full_name: str, path: Path) -> ProviderRecord:
    """Load and validate one candidate directory into a ProviderRecord."""
    interface = load_provider_module(full_name, path)
    capabilities = validate_interface(interface, full_name)
    return ProviderRecord(
        name=strip_namespace(full_name),
        full_name=full_name,
        path=path,
        version=str(interface.version).strip(),
        capabilities=capabilities,
        templates=_declared_templates(interface),
        interface=interface,
    )


def discover(root_paths: Iterable[Path]) -> dict[str, ProviderRecord]:
    """Scan roots in order and return a logical-name keyed catalog.

    Never raises: bad candidates are logged and skipped, and a later root
    overwrites an earlier provider with the same logical name.
    """
    catalog: dict[str, ProviderRecord] = {}
    for root in root_paths:
        root_path = Path(root)
        if not _is_root_dir(root_path):
            logger.debug("Provider root %s does not exist; skipping", root_path)
            continue
        for full_name, path in iter_candidates(root_path):
            if not _has_entry_point(path):
                logger.debug("Skipping %s: no %s", path, PROVIDER_ENTRY_POINT)
                continue
            try:
                record = load_provider(full_name, path)
            except ProviderValidationError as exc:
                logger.error("%s", exc)
                continue
            except ZypinError as exc:
                logger.error("Error loading plugin %s: %s", full_name, exc)
                continue
            except Exception as exc:  # pragma: no cover - guarded by loader
                logger.error("Unexpected error loading plugin %s: %s", full_name, exc)
                continue
            if record.name in catalog:
                logger.debug(
                    "Provider %s from %s replaces %s",
                    record.name,
                    record.path,
                    catalog[record.name].path,
                )
            catalog[record.name] = record
            logger.debug("Loaded provider %s %s from %s", record.name, record.version, record.path)
    return catalog
