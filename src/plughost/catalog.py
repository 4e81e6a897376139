"""Plugin catalog: discovery of plugin candidates without instantiating them.

Candidates are found in two ways:
1. Directory scan: files in the root and its immediate subdirectories
   whose extension has a registered compiler or is precompiled.
2. Loaded-module scan: Plugin subclasses defined in a module that is
   already resident in the process.

Source files may describe themselves in a leading block of comments:

    # name: Contour Tool
    # description: Draws contour lines
    # version: 1.2
    # references: helpers.py, json
    # autoload: true
"""

from __future__ import annotations

import inspect
import types
from pathlib import Path
from typing import Iterator, Optional

from loguru import logger

from plughost.base import Plugin, PluginRecord
from plughost.compilers import CompilerRegistry, default_registry, is_precompiled_extension
from plughost.errors import DiscoveryError

_TRUE_VALUES = {"1", "true", "yes", "on"}


def parse_references(value: str) -> list[str]:
    return [token.strip() for token in value.split(",") if token.strip()]


def read_header(path: Path) -> dict[str, str]:
    """Read ``# key: value`` metadata from the top of a source file.

    Raises DiscoveryError if the file cannot be read as text.
    """
    header: dict[str, str] = {}
    try:
        with open(path, encoding="utf-8") as fh:
            for raw in fh:
                line = raw.strip()
                if not line:
                    continue
                if not line.startswith("#"):
                    break
                key, sep, value = line.lstrip("#").partition(":")
                if sep:
                    header[key.strip().lower()] = value.strip()
    except (OSError, UnicodeDecodeError) as e:
        raise DiscoveryError(f"Cannot read header of {path}: {e}") from e
    return header


def is_plugin_class(obj: object, module: types.ModuleType) -> bool:
    """Public, concrete class defined in ``module`` directly extending Plugin."""
    return (
        inspect.isclass(obj)
        and obj.__module__ == module.__name__
        and not obj.__name__.startswith("_")
        and Plugin in obj.__bases__
        and not inspect.isabstract(obj)
    )


def plugin_classes(module: types.ModuleType) -> list[type]:
    """Plugin classes of a module in declaration order."""
    return [obj for obj in vars(module).values() if is_plugin_class(obj, module)]


class PluginCatalog:
    """Ordered, path-deduplicated collection of plugin records."""

    def __init__(
        self,
        root: Path | str,
        registry: Optional[CompilerRegistry] = None,
        create_root: bool = False,
    ) -> None:
        self.root = Path(root)
        self.registry = registry or default_registry()
        self._records: list[PluginRecord] = []
        if create_root:
            try:
                self.root.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                logger.warning(f"Could not create plugin directory {self.root}: {e}")

    # ------------------------------------------------------------------
    # Collection
    # ------------------------------------------------------------------

    def __iter__(self) -> Iterator[PluginRecord]:
        return iter(list(self._records))

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, record: object) -> bool:
        return any(r is record for r in self._records)

    @property
    def records(self) -> list[PluginRecord]:
        return list(self._records)

    def contains_path(self, path: Path) -> bool:
        path = Path(path).resolve()
        return any(r.full_path == path for r in self._records)

    def add(self, record: PluginRecord) -> bool:
        """Insert a record. Returns False if its path is already catalogued."""
        if record in self:
            return False
        if record.full_path is not None and self.contains_path(record.full_path):
            return False
        self._records.append(record)
        return True

    def remove(self, record: PluginRecord) -> None:
        self._records = [r for r in self._records if r is not record]

    def find(self, name: str) -> Optional[PluginRecord]:
        """First record with this name, in insertion order."""
        for record in self._records:
            if record.name == name:
                return record
        return None

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def scan_directory(self, root: Path | str | None = None) -> list[PluginRecord]:
        """Catalogue plugin files in ``root`` and its immediate subdirectories.

        Subdirectories are scanned first, then the root itself. A missing
        root yields no candidates.

        Returns:
            Records added by this scan, in scan order.
        """
        root = Path(root) if root is not None else self.root
        if not root.is_dir():
            logger.debug(f"Plugin directory not found: {root}")
            return []

        directories = sorted(
            p for p in root.iterdir() if p.is_dir() and p.name != "__pycache__"
        )
        directories.append(root)

        found: list[PluginRecord] = []
        for directory in directories:
            for path in sorted(p for p in directory.iterdir() if p.is_file()):
                record = self._record_for_file(path.resolve())
                if record is not None and self.add(record):
                    found.append(record)
                    logger.debug(f"Discovered plugin: {record.name} from {path}")
        return found

    def _record_for_file(self, path: Path) -> Optional[PluginRecord]:
        if not self.registry.is_plugin_extension(path.suffix):
            return None
        if self.contains_path(path):
            return None

        record = PluginRecord(full_path=path)
        if is_precompiled_extension(path.suffix):
            return record

        try:
            header = read_header(path)
        except DiscoveryError as e:
            logger.warning(str(e))
            return record

        record.name = header.get("name") or record.name
        record.description = header.get("description", "")
        record.version = header.get("version", "")
        record.references = parse_references(header.get("references", ""))
        record.auto_load_at_startup = header.get("autoload", "").lower() in _TRUE_VALUES
        return record

    def _has_module_record(self, cls: type) -> bool:
        return any(
            r.full_path is None and type(r.bound_instance) is cls
            for r in self._records
        )

    def scan_loaded_module(self, module: types.ModuleType) -> list[PluginRecord]:
        """Catalogue Plugin subclasses of an already-loaded module.

        Each class is default-constructed; classes that fail to construct
        are skipped, as are classes already catalogued by an earlier scan.
        Never raises.
        """
        found: list[PluginRecord] = []
        for cls in plugin_classes(module):
            if self._has_module_record(cls):
                continue
            try:
                instance = cls()
            except Exception as e:
                logger.debug(f"Skipping {module.__name__}.{cls.__name__}: {e}")
                continue
            record = PluginRecord(
                name=cls.__name__,
                description="internally loaded plugin.",
                bound_instance=instance,
            )
            if self.add(record):
                found.append(record)
        return found
