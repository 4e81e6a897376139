"""Loader: binds a plugin record to a live Plugin instance.

A module exposes its plugin either through a ``create_plugin()`` factory
or, failing that, through the first public concrete class (declaration
order) that directly extends Plugin.
"""

from __future__ import annotations

import inspect
import types
from pathlib import Path
from typing import Optional

from loguru import logger

from plughost.base import HostApplication, Plugin, PluginRecord
from plughost.builder import Builder
from plughost.catalog import plugin_classes
from plughost.errors import ContractViolationError, RuntimeLoadError

FACTORY_NAME = "create_plugin"


def _requires_arguments(cls: type) -> bool:
    try:
        inspect.signature(cls).bind()
    except TypeError:
        return True
    except ValueError:
        # No introspectable signature; let construction decide.
        return False
    return False


def instantiate_plugin(module: types.ModuleType) -> Plugin:
    """Create the plugin instance a module provides.

    Raises:
        ContractViolationError: the factory returns a non-Plugin, a
            candidate class has no zero-argument constructor, or the
            module holds no usable Plugin class.
    """
    factory = getattr(module, FACTORY_NAME, None)
    if callable(factory):
        instance = factory()
        if not isinstance(instance, Plugin):
            raise ContractViolationError(
                f"{module.__name__}.{FACTORY_NAME}() returned "
                f"{type(instance).__name__}, not a Plugin"
            )
        return instance

    for cls in plugin_classes(module):
        if _requires_arguments(cls):
            raise ContractViolationError(
                f"Plugin class {cls.__name__} has no zero-argument constructor"
            )
        try:
            return cls()
        except Exception as e:
            logger.debug(f"Skipping plugin class {cls.__name__}: {e}")

    raise ContractViolationError(
        f"No plugin type found in {module.__name__}: "
        f"plugin does not derive from base class Plugin"
    )


class Loader:
    """Loads and unloads plugin records against one host application."""

    def __init__(
        self,
        host: HostApplication,
        builder: Optional[Builder] = None,
        default_subdir: str = "plugins",
    ) -> None:
        self.host = host
        self.builder = builder or Builder()
        self.default_subdir = default_subdir

    def runtime_directory(self, record: PluginRecord) -> Path:
        if record.full_path is not None:
            return record.full_path.parent
        return Path(self.host.application_path) / self.default_subdir

    def load(self, record: PluginRecord) -> Plugin:
        """Load a record, compiling and binding it first if needed.

        A record that is bound but unloaded reuses its instance; one that
        is already loaded is left alone.

        Raises:
            BuildError: compile or reference failure.
            ContractViolationError: no usable Plugin in the module.
            RuntimeLoadError: the plugin's load() raised. The record is
                left as it was; nothing is unregistered.
        """
        instance = record.bound_instance
        if record.is_currently_loaded:
            logger.debug(f"Plugin already loaded: {record.name}")
            return instance
        if instance is None:
            module = self.builder.build(record)
            instance = instantiate_plugin(module)

        directory = self.runtime_directory(record)
        try:
            instance.load(self.host, directory)
        except Exception as e:
            raise RuntimeLoadError(record.name, e) from e

        record.bound_instance = instance
        record.loaded = True
        logger.info(f"Plugin loaded: {record.name} ({directory})")
        return instance

    def unload(self, record: PluginRecord) -> None:
        """Call the plugin's unload(); the instance stays bound."""
        if not record.is_currently_loaded:
            return
        record.bound_instance.unload()
        record.loaded = False
        logger.info(f"Plugin unloaded: {record.name}")
