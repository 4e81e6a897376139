"""plughost: plugin runtime for host applications.

Discovers plugin files on disk, compiles or loads them, binds each one
to the Plugin contract and manages its load/unload/uninstall lifecycle.
"""

from plughost.base import HostApplication, Plugin, PluginRecord
from plughost.builder import Builder
from plughost.catalog import PluginCatalog
from plughost.compilers import (
    CompilerRegistry,
    PythonScriptCompiler,
    PythonSourceCompiler,
    default_registry,
    is_precompiled_extension,
)
from plughost.errors import (
    BuildError,
    CompileError,
    ContractViolationError,
    DiscoveryError,
    PluginError,
    ReferenceResolutionError,
    RuntimeLoadError,
)
from plughost.loader import Loader
from plughost.logsink import configure_logging
from plughost.manager import PluginManager

__all__ = [
    "BuildError",
    "Builder",
    "CompileError",
    "CompilerRegistry",
    "ContractViolationError",
    "DiscoveryError",
    "HostApplication",
    "Loader",
    "Plugin",
    "PluginCatalog",
    "PluginError",
    "PluginManager",
    "PluginRecord",
    "PythonScriptCompiler",
    "PythonSourceCompiler",
    "ReferenceResolutionError",
    "RuntimeLoadError",
    "configure_logging",
    "default_registry",
    "is_precompiled_extension",
]
