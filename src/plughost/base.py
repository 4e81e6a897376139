"""Plugin contract, host boundary and catalog record.

Every plugin must extend Plugin and implement at minimum:
- load(host, directory): register behavior with the host
- unload(): optional, tears that behavior down again

The runtime only ever holds Plugin references, so any number of
independent implementations can live side by side.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class HostApplication(Protocol):
    """What the runtime needs from the application hosting plugins."""

    application_path: Path


class Plugin(ABC):
    """Base class all plugins must extend."""

    _visible: bool = False

    @abstractmethod
    def load(self, host: HostApplication, directory: Path) -> None:
        """Register the plugin with the host.

        ``directory`` is the folder the plugin was loaded from, or a
        default folder under the host's application path.
        """

    def unload(self) -> None:
        """Undo whatever load() registered. Default is a no-op."""

    def show(self) -> None:
        self._visible = True

    def hide(self) -> None:
        self._visible = False

    @property
    def visible(self) -> bool:
        return self._visible


@dataclass(eq=False)
class PluginRecord:
    """Catalog entry for one plugin candidate and its binding state.

    Records compare by identity. ``full_path`` is the de-duplication key
    inside a catalog; records found in an already-loaded module have none.
    """

    name: str = ""
    description: str = ""
    version: str = ""
    full_path: Optional[Path] = None
    references: list[str] = field(default_factory=list)
    auto_load_at_startup: bool = False
    bound_instance: Optional[Plugin] = None
    loaded: bool = field(default=False, repr=False)

    def __post_init__(self) -> None:
        if self.full_path is not None:
            self.full_path = Path(self.full_path).resolve()
            if not self.name:
                self.name = self.full_path.stem

    @property
    def extension(self) -> str:
        if self.full_path is None:
            return ""
        return self.full_path.suffix.lower()

    @property
    def is_currently_loaded(self) -> bool:
        return self.bound_instance is not None and self.loaded

    @property
    def status(self) -> str:
        if self.bound_instance is None:
            return "catalogued"
        return "loaded" if self.loaded else "unloaded"
