"""Exception hierarchy for the plugin runtime.

Explicit single-plugin operations (load, unload, uninstall) let these
propagate. Batch operations catch them per plugin and log.
"""

from __future__ import annotations


class PluginError(Exception):
    """Base class for all plugin runtime errors."""


class DiscoveryError(PluginError):
    """A candidate file or class is unusable. The item is skipped."""


class BuildError(PluginError):
    """A plugin source file could not be turned into a module."""


class ReferenceResolutionError(BuildError):
    """A declared reference token resolved neither by name nor by path."""

    def __init__(self, token: str, reason: str = "") -> None:
        self.token = token
        message = f"Failed to load '{token}'"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class CompileError(BuildError):
    """The compiler reported at least one error diagnostic."""

    def __init__(self, diagnostics: str) -> None:
        self.diagnostics = diagnostics
        super().__init__(diagnostics)


class ContractViolationError(PluginError):
    """No class in the module implements the Plugin contract correctly."""


class RuntimeLoadError(PluginError):
    """The plugin's own load entry point raised."""

    def __init__(self, name: str, original: BaseException) -> None:
        self.name = name
        self.original = original
        super().__init__(f"Plugin '{name}' failed to load: {original}")
