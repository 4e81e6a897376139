"""Plugin manager: catalog ownership and lifecycle.

Handles the per-record lifecycle:
  catalogued -> load() -> loaded -> unload() -> unloaded -> load() -> ...
  any state -> uninstall() -> removed (file deleted, record dropped)

Single-record operations propagate every error to the caller. Batch
operations (load_startup_plugins, dispose_all) log per-record failures
through the sink and carry on with the next record.
"""

from __future__ import annotations

import types
from pathlib import Path
from typing import Iterator, Optional

from loguru import logger

from plughost.base import HostApplication, Plugin, PluginRecord
from plughost.builder import Builder
from plughost.catalog import PluginCatalog
from plughost.config import PluginSettings
from plughost.config import settings as default_settings
from plughost.errors import PluginError
from plughost.loader import Loader
from plughost.logsink import DEFAULT_CATEGORY, LoguruSink, LogSink, configure_logging


class PluginManager:
    """Owns a plugin catalog and drives its records through their lifecycle."""

    def __init__(
        self,
        host: HostApplication,
        catalog: PluginCatalog,
        loader: Optional[Loader] = None,
        sink: Optional[LogSink] = None,
        category: str = DEFAULT_CATEGORY,
        startup_plugins: Optional[list[str]] = None,
    ) -> None:
        self.host = host
        self.catalog = catalog
        self.loader = loader or Loader(host, Builder(catalog.registry))
        self.sink = sink or LoguruSink(category)
        self.category = category
        self.startup_plugins = set(startup_plugins or [])

    @classmethod
    def from_settings(
        cls,
        host: HostApplication,
        settings: Optional[PluginSettings] = None,
        sink: Optional[LogSink] = None,
    ) -> PluginManager:
        settings = settings or default_settings
        configure_logging(settings.log_level)
        plugins_dir = Path(settings.plugins_dir)
        if not plugins_dir.is_absolute():
            plugins_dir = Path(host.application_path) / plugins_dir
        catalog = PluginCatalog(plugins_dir, create_root=settings.create_plugins_dir)
        builder = Builder(catalog.registry, optimize=settings.optimize)
        loader = Loader(host, builder, default_subdir=settings.default_subdir)
        return cls(
            host, catalog, loader,
            sink=sink,
            category=settings.log_category,
            startup_plugins=settings.startup_plugins,
        )

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def find_plugins(self) -> list[PluginRecord]:
        """Scan the plugin root for new records."""
        found = self.catalog.scan_directory()
        self._flag_startup(found)
        return found

    def find_plugins_in_module(self, module: types.ModuleType) -> list[PluginRecord]:
        found = self.catalog.scan_loaded_module(module)
        self._flag_startup(found)
        return found

    def _flag_startup(self, records: list[PluginRecord]) -> None:
        for record in records:
            if record.name in self.startup_plugins:
                record.auto_load_at_startup = True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def plugins(self) -> list[PluginRecord]:
        return self.catalog.records

    def __iter__(self) -> Iterator[PluginRecord]:
        return iter(self.catalog)

    def find(self, name: str) -> Optional[PluginRecord]:
        return self.catalog.find(name)

    def get(self, name: str) -> Optional[Plugin]:
        """Bound instance of the first record named ``name``, or None."""
        record = self.catalog.find(name)
        return record.bound_instance if record is not None else None

    def __getitem__(self, name: str) -> Optional[Plugin]:
        return self.get(name)

    def describe(self, record: PluginRecord) -> dict:
        instance = record.bound_instance
        return {
            "name": record.name,
            "description": record.description,
            "version": record.version,
            "path": str(record.full_path) if record.full_path else None,
            "references": list(record.references),
            "auto_load": record.auto_load_at_startup,
            "status": record.status,
            "visible": instance.visible if instance is not None else False,
        }

    def list_plugins(self) -> list[dict]:
        """List all catalogued plugins with status info."""
        return [self.describe(record) for record in self.catalog]

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _require_catalogued(self, record: PluginRecord) -> None:
        if record not in self.catalog:
            raise PluginError(f"Plugin '{record.name}' is not in the catalog")

    def load(self, record: PluginRecord) -> Plugin:
        self._require_catalogued(record)
        return self.loader.load(record)

    def unload(self, record: PluginRecord) -> None:
        self._require_catalogued(record)
        self.loader.unload(record)

    def uninstall(self, record: PluginRecord) -> None:
        """Unload, delete the backing file and drop the record. Irreversible.

        The record is unbound afterwards; any later lifecycle call on it
        raises PluginError.
        """
        self.unload(record)
        if record.full_path is not None:
            record.full_path.unlink(missing_ok=True)
        self.catalog.remove(record)
        record.bound_instance = None
        record.loaded = False
        logger.info(f"Plugin uninstalled: {record.name}")

    def load_startup_plugins(self) -> dict[str, bool]:
        """Load every record flagged for startup.

        A failing record is logged, loses its startup flag and is skipped;
        the remaining records are still loaded.

        Returns:
            Dict mapping plugin name to success (True/False).
        """
        results: dict[str, bool] = {}
        for record in self.catalog:
            if not record.auto_load_at_startup:
                continue
            try:
                self.sink.write_message("DEBUG", self.category, f"loading {record.name} ...")
                self.load(record)
                results[record.name] = True
            except Exception as e:
                self.sink.write_message(
                    "ERROR", self.category, f"Plugin {record.name} failed: {e}"
                )
                self.sink.write_exception(e)
                record.auto_load_at_startup = False
                results[record.name] = False
        return results

    def dispose_all(self) -> None:
        """Unload every record; failures are logged, never raised."""
        for record in self.catalog:
            try:
                self.unload(record)
            except Exception as e:
                self.sink.write_message(
                    "ERROR", self.category,
                    f"Plugin unload failed: {record.name}: {e}",
                )

    # ------------------------------------------------------------------
    # Visibility
    # ------------------------------------------------------------------

    def set_visible(self, name: str, visible: bool) -> None:
        plugin = self.get(name)
        if plugin is None:
            return
        if visible:
            plugin.show()
        else:
            plugin.hide()

    def switch_visible(self, name: str) -> None:
        plugin = self.get(name)
        if plugin is None:
            return
        if plugin.visible:
            plugin.hide()
        else:
            plugin.show()
