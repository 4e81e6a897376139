"""Tests for the plugin management API router."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient


@pytest.fixture
def manager(host, plugin_dir, sink, write_plugin, make_source):
    from plughost.catalog import PluginCatalog
    from plughost.manager import PluginManager
    write_plugin("tool.py", make_source("Tool"))
    write_plugin("bad.py", make_source("Bad", fail=True))
    mgr = PluginManager(host, PluginCatalog(plugin_dir), sink=sink)
    mgr.find_plugins()
    return mgr


@pytest.fixture
def client(manager):
    """FastAPI test client with plugin manager on app state."""
    from plughost.routers.plugins import router

    app = FastAPI()
    app.include_router(router)
    app.state.plugin_manager = manager
    return TestClient(app)


class TestPluginListEndpoint:
    """GET /api/plugins lists all plugins."""

    def test_list_plugins(self, client):
        resp = client.get("/api/plugins")
        assert resp.status_code == 200
        names = [p["name"] for p in resp.json()]
        assert names == ["Bad", "Tool"]

    def test_list_plugins_has_status(self, client):
        data = client.get("/api/plugins").json()
        assert {p["status"] for p in data} == {"catalogued"}


class TestPluginDetailEndpoint:

    def test_get_existing_plugin(self, client):
        resp = client.get("/api/plugins/Tool")
        assert resp.status_code == 200
        assert resp.json()["version"] == "1.0"

    def test_get_nonexistent_plugin(self, client):
        assert client.get("/api/plugins/nonexistent").status_code == 404


class TestLifecycleEndpoints:

    def test_load_and_unload(self, client, manager):
        resp = client.post("/api/plugins/Tool/load")
        assert resp.status_code == 200
        assert resp.json()["status"] == "loaded"
        assert manager.find("Tool").is_currently_loaded

        resp = client.post("/api/plugins/Tool/unload")
        assert resp.json()["status"] == "unloaded"

    def test_load_failure_is_500(self, client):
        resp = client.post("/api/plugins/Bad/load")
        assert resp.status_code == 500
        assert "boom" in resp.json()["detail"]

    def test_factory_error_is_500_with_detail(self, client, manager, write_plugin):
        write_plugin("factory.py", (
            "# name: Factory\n"
            "def create_plugin():\n"
            "    raise ValueError(\"no config\")\n"
        ))
        manager.find_plugins()
        resp = client.post("/api/plugins/Factory/load")
        assert resp.status_code == 500
        assert resp.json()["detail"] == "no config"

    def test_load_unknown_is_404(self, client):
        assert client.post("/api/plugins/Ghost/load").status_code == 404

    def test_visibility(self, client):
        client.post("/api/plugins/Tool/load")
        assert client.post("/api/plugins/Tool/toggle").json()["visible"] is True
        assert client.post("/api/plugins/Tool/toggle").json()["visible"] is False
        resp = client.post("/api/plugins/Tool/visible", params={"visible": "true"})
        assert resp.json()["visible"] is True

    def test_uninstall(self, client, manager, plugin_dir):
        resp = client.delete("/api/plugins/Tool")
        assert resp.status_code == 200
        assert manager.find("Tool") is None
        assert not (plugin_dir / "tool.py").exists()


class TestNoPluginManager:
    """Graceful behavior when no plugin manager is available."""

    def _client(self):
        from plughost.routers.plugins import router
        app = FastAPI()
        app.include_router(router)
        return TestClient(app)

    def test_list_returns_empty_without_manager(self):
        resp = self._client().get("/api/plugins")
        assert resp.status_code == 200
        assert resp.json() == []

    def test_detail_404_without_manager(self):
        assert self._client().get("/api/plugins/Tool").status_code == 404
