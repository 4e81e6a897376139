"""Builder: turns a plugin record into a resident module.

Source plugins go through the compiler registered for their extension.
Precompiled plugins are loaded straight from disk.

Declared references are resolved in order, each one first by logical
name against modules the host has already imported, then as a file in
the plugin's own directory. The first token that resolves neither way
aborts the build before the compiler runs.
"""

from __future__ import annotations

import importlib
import importlib.machinery
import importlib.util
import re
import sys
import types
from pathlib import Path
from typing import Optional

from loguru import logger

from plughost.base import PluginRecord
from plughost.compilers import (
    CompileOptions,
    CompilerRegistry,
    SourceCompiler,
    default_registry,
    is_precompiled_extension,
)
from plughost.errors import BuildError, CompileError, ReferenceResolutionError

_MODULE_PREFIX = "plughost_plugin_"


def module_name_for(path: Path) -> str:
    stem = re.sub(r"\W", "_", Path(path).stem)
    return f"{_MODULE_PREFIX}{stem}"


def host_module_locations() -> tuple[str, ...]:
    """File locations of every module currently loaded in the process."""
    locations: list[str] = []
    for module in list(sys.modules.values()):
        location = getattr(module, "__file__", None)
        if location:
            locations.append(location)
    return tuple(locations)


def _load_module_from_file(name: str, path: Path) -> types.ModuleType:
    spec = importlib.util.spec_from_file_location(name, path)
    if spec is None or spec.loader is None:
        raise ImportError(f"no loader for {path.name}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class Builder:
    """Compiles plugin records. Not thread-safe; callers serialize."""

    def __init__(self, registry: Optional[CompilerRegistry] = None, optimize: int = 0) -> None:
        self.registry = registry or default_registry()
        self.optimize = optimize

    # ------------------------------------------------------------------
    # References
    # ------------------------------------------------------------------

    def resolve_reference(self, record: PluginRecord, token: str) -> tuple[str, types.ModuleType]:
        """Resolve one reference token to (binding name, module).

        Raises:
            ReferenceResolutionError: token is neither a loaded module
                nor a loadable file next to the plugin.
        """
        module = sys.modules.get(token)
        if module is not None:
            top = token.partition(".")[0]
            return top, sys.modules.get(top, module)

        if record.full_path is None:
            raise ReferenceResolutionError(token, "not a loaded module")

        path = record.full_path.parent / token
        if not path.is_file():
            raise ReferenceResolutionError(
                token, f"search for required library in {path.parent} failed"
            )
        name = re.sub(r"\W", "_", path.stem)
        try:
            return name, _load_module_from_file(name, path)
        except Exception as e:
            raise ReferenceResolutionError(token, str(e)) from e

    def build_options(self, record: PluginRecord, compiler: SourceCompiler) -> CompileOptions:
        """Fresh, immutable compiler configuration for one record."""
        bound: dict[str, types.ModuleType] = {}
        locations = list(host_module_locations())

        for name in compiler.implicit_references:
            module = importlib.import_module(name)
            bound[name.partition(".")[0]] = sys.modules[name.partition(".")[0]]
            locations.append(getattr(module, "__file__", None) or name)

        for token in record.references:
            if not token:
                continue
            name, module = self.resolve_reference(record, token)
            bound[name] = module
            locations.append(getattr(module, "__file__", None) or token)

        return CompileOptions(
            module_name=module_name_for(record.full_path),
            references=tuple(locations),
            reference_modules=types.MappingProxyType(bound),
            optimize=self.optimize,
        )

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    def compile(self, record: PluginRecord) -> types.ModuleType:
        """Compile a source plugin into a module.

        Raises:
            BuildError: no compiler for the extension.
            ReferenceResolutionError: a declared reference is unresolvable.
            CompileError: the compiler reported errors.
        """
        if record.full_path is None:
            raise BuildError(f"Plugin '{record.name}' has no source file")
        compiler = self.registry.lookup(record.extension)
        if compiler is None:
            raise BuildError(f"No compiler registered for '{record.extension}'")

        options = self.build_options(record, compiler)
        result = compiler.compile(record.full_path, options)

        if result.diagnostics:
            text = "\n".join(str(d) for d in result.diagnostics)
            if result.has_errors:
                raise CompileError(text)
            logger.warning(f"Plugin {record.name} compiled with warnings:\n{text}")

        if result.module is None:
            raise CompileError(f"Compiler produced no module for {record.full_path}")
        return result.module

    def load_precompiled(self, record: PluginRecord) -> types.ModuleType:
        """Load a ``.pyc`` plugin directly, without compiling."""
        if record.full_path is None or not is_precompiled_extension(record.extension):
            raise BuildError(f"Plugin '{record.name}' is not precompiled")
        name = module_name_for(record.full_path)
        loader = importlib.machinery.SourcelessFileLoader(name, str(record.full_path))
        spec = importlib.util.spec_from_loader(name, loader)
        module = importlib.util.module_from_spec(spec)
        try:
            loader.exec_module(module)
        except Exception as e:
            raise BuildError(f"Failed to load {record.full_path}: {e}") from e
        return module

    def build(self, record: PluginRecord) -> types.ModuleType:
        """Module for a record, compiled or loaded as its extension requires."""
        if is_precompiled_extension(record.extension):
            return self.load_precompiled(record)
        return self.compile(record)
