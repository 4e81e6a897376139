"""Source compilers and the extension -> compiler registry.

A compiler turns one plugin source file into a resident module object.
Precompiled plugins (``.pyc``) skip this step and are loaded directly.
"""

from __future__ import annotations

import traceback
import types
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional, Protocol

from loguru import logger

PRECOMPILED_EXTENSION = ".pyc"


def normalize_extension(extension: str) -> str:
    """Lower-case and dot-prefix an extension: 'PY' -> '.py'."""
    ext = extension.strip().lower()
    if ext and not ext.startswith("."):
        ext = "." + ext
    return ext


def is_precompiled_extension(extension: str) -> bool:
    """True for modules that need no compilation, only loading."""
    return normalize_extension(extension) == PRECOMPILED_EXTENSION


@dataclass(frozen=True)
class Diagnostic:
    is_warning: bool
    code: str
    line: int
    column: int
    text: str

    def __str__(self) -> str:
        kind = "Warning" if self.is_warning else "Error"
        return f"{kind} {self.code}: Line {self.line} Column {self.column}: {self.text}"


@dataclass(frozen=True)
class CompileOptions:
    """Compiler configuration for a single compile call.

    Built fresh by the Builder every time and never mutated, so two
    compiles can never see each other's references.
    """
    module_name: str
    references: tuple[str, ...] = ()
    reference_modules: Mapping[str, types.ModuleType] = field(
        default_factory=lambda: types.MappingProxyType({})
    )
    optimize: int = 0


@dataclass(frozen=True)
class CompileResult:
    module: Optional[types.ModuleType]
    diagnostics: tuple[Diagnostic, ...] = ()

    @property
    def has_errors(self) -> bool:
        return any(not d.is_warning for d in self.diagnostics)

    @property
    def has_warnings(self) -> bool:
        return any(d.is_warning for d in self.diagnostics)


class SourceCompiler(Protocol):
    """Capability that compiles one source file into a module."""

    extension: str
    implicit_references: tuple[str, ...]

    def compile(self, path: Path, options: CompileOptions) -> CompileResult:
        ...


class PythonSourceCompiler:
    """Compiles ``.py`` plugin sources with the ``compile()`` builtin.

    The code object is executed in a fresh module that is not registered
    in ``sys.modules``. Resolved reference modules are bound in its
    namespace under their logical names.
    """

    extension = ".py"
    implicit_references: tuple[str, ...] = ()

    def compile(self, path: Path, options: CompileOptions) -> CompileResult:
        path = Path(path)
        diagnostics: list[Diagnostic] = []
        try:
            source = path.read_bytes()
        except OSError as e:
            return CompileResult(None, (Diagnostic(False, "OSError", 0, 0, str(e)),))

        code = None
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            try:
                code = compile(
                    source, str(path), "exec",
                    dont_inherit=True, optimize=options.optimize,
                )
            except (SyntaxError, ValueError) as e:
                diagnostics.append(Diagnostic(
                    False, type(e).__name__,
                    getattr(e, "lineno", None) or 0,
                    getattr(e, "offset", None) or 0,
                    getattr(e, "msg", None) or str(e),
                ))
        for w in caught:
            diagnostics.append(Diagnostic(
                True, w.category.__name__, w.lineno or 0, 0, str(w.message)
            ))
        if code is None:
            return CompileResult(None, tuple(diagnostics))

        module = types.ModuleType(options.module_name)
        module.__file__ = str(path)
        module.__dict__.update(options.reference_modules)
        module.__plugin_references__ = options.references
        try:
            exec(code, module.__dict__)
        except Exception as e:
            line = 0
            for frame in traceback.extract_tb(e.__traceback__):
                if frame.filename == str(path):
                    line = frame.lineno or 0
            diagnostics.append(Diagnostic(False, type(e).__name__, line, 0, str(e)))
            return CompileResult(None, tuple(diagnostics))

        return CompileResult(module, tuple(diagnostics))


class PythonScriptCompiler(PythonSourceCompiler):
    """Compiles ``.pyw`` script plugins.

    Scripts get ``pathlib`` bound implicitly so they can locate data
    files next to themselves without an import line.
    """

    extension = ".pyw"
    implicit_references = ("pathlib",)


class CompilerRegistry:
    """Maps normalized file extensions to source compilers."""

    def __init__(self) -> None:
        self._compilers: dict[str, SourceCompiler] = {}

    def register(self, extension: str, compiler: SourceCompiler) -> None:
        """Register a compiler for an extension.

        Registering the same compiler twice is a no-op. Raises ValueError
        if a different compiler already owns the extension.
        """
        key = normalize_extension(extension)
        existing = self._compilers.get(key)
        if existing is compiler:
            return
        if existing is not None:
            raise ValueError(
                f"Compiler for '{key}' already registered "
                f"(existing: {type(existing).__name__})"
            )
        self._compilers[key] = compiler
        logger.debug(f"Compiler registered: {key} ({type(compiler).__name__})")

    def lookup(self, extension: str) -> Optional[SourceCompiler]:
        return self._compilers.get(normalize_extension(extension))

    def has_compiler(self, extension: str) -> bool:
        return normalize_extension(extension) in self._compilers

    def extensions(self) -> list[str]:
        return list(self._compilers)

    def is_plugin_extension(self, extension: str) -> bool:
        """Compilable or precompiled."""
        return self.has_compiler(extension) or is_precompiled_extension(extension)


_default_registry: Optional[CompilerRegistry] = None


def default_registry() -> CompilerRegistry:
    """Process-wide registry with the built-in Python compilers."""
    global _default_registry
    if _default_registry is None:
        registry = CompilerRegistry()
        for compiler in (PythonSourceCompiler(), PythonScriptCompiler()):
            registry.register(compiler.extension, compiler)
        _default_registry = registry
    return _default_registry
