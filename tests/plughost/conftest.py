"""Shared fixtures for plugin runtime tests."""

from __future__ import annotations

import textwrap
from dataclasses import dataclass, field
from pathlib import Path

import pytest


@dataclass
class FakeHost:
    """Host application that records what plugins register with it."""
    application_path: Path
    registered: list = field(default_factory=list)


class RecordingSink:
    """Log sink that keeps every message for assertions."""

    def __init__(self) -> None:
        self.messages: list[tuple[str, str, str]] = []
        self.exceptions: list[BaseException] = []

    def write_message(self, level, category, text):
        self.messages.append((level, category, text))

    def write_exception(self, exc):
        self.exceptions.append(exc)

    def errors(self) -> list[str]:
        return [text for level, _cat, text in self.messages if level == "ERROR"]


def plugin_source(name: str, cls: str = "SamplePlugin", autoload: bool = False,
                  fail: bool = False, references: str = "") -> str:
    """Source text of a minimal plugin that registers itself with the host."""
    header = f"# name: {name}\n# version: 1.0\n# description: {name} test plugin\n"
    if autoload:
        header += "# autoload: true\n"
    if references:
        header += f"# references: {references}\n"
    body = textwrap.dedent(f"""
        from plughost.base import Plugin


        class {cls}(Plugin):
            def load(self, host, directory):
                if {fail!r}:
                    raise RuntimeError("boom")
                host.registered.append(("{name}", directory))

            def unload(self):
                self.unloaded = True
        """)
    return header + body


@pytest.fixture
def host(tmp_path):
    app = tmp_path / "app"
    app.mkdir()
    return FakeHost(application_path=app)


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def plugin_dir(tmp_path):
    root = tmp_path / "plugins"
    root.mkdir()
    return root


@pytest.fixture
def write_plugin(plugin_dir):
    """Write a plugin file under the plugin root and return its resolved path."""
    def _write(filename: str, source: str) -> Path:
        path = plugin_dir / filename
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(source, encoding="utf-8")
        return path.resolve()
    return _write


@pytest.fixture
def make_source():
    return plugin_source
