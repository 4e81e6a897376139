"""Plugin management API.

Lists catalogued plugins and drives load, unload and visibility.
"""

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse

router = APIRouter(prefix="/api/plugins", tags=["plugins"])


def _get_manager(request: Request):
    """Get plugin manager from app state, or None."""
    try:
        return request.app.state.plugin_manager
    except (AttributeError, KeyError):
        return None


def _lookup(request: Request, name: str):
    """(manager, record) for a plugin name; 404 if either is missing."""
    mgr = _get_manager(request)
    if mgr is None:
        raise HTTPException(status_code=404, detail="No plugin manager")
    record = mgr.find(name)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Plugin '{name}' not found")
    return mgr, record


@router.get("")
async def list_plugins(request: Request):
    """List all catalogued plugins with status."""
    mgr = _get_manager(request)
    if mgr is None:
        return []
    return mgr.list_plugins()


@router.get("/{name}")
async def get_plugin(name: str, request: Request):
    """Get details for a specific plugin."""
    mgr, record = _lookup(request, name)
    return mgr.describe(record)


@router.post("/{name}/load")
async def load_plugin(name: str, request: Request):
    mgr, record = _lookup(request, name)
    try:
        mgr.load(record)
    except Exception as e:
        return JSONResponse(status_code=500, content={"detail": str(e)})
    return mgr.describe(record)


@router.post("/{name}/unload")
async def unload_plugin(name: str, request: Request):
    mgr, record = _lookup(request, name)
    try:
        mgr.unload(record)
    except Exception as e:
        return JSONResponse(status_code=500, content={"detail": str(e)})
    return mgr.describe(record)


@router.post("/{name}/visible")
async def set_visible(name: str, request: Request, visible: bool = True):
    mgr, record = _lookup(request, name)
    mgr.set_visible(name, visible)
    return mgr.describe(record)


@router.post("/{name}/toggle")
async def toggle_visible(name: str, request: Request):
    mgr, record = _lookup(request, name)
    mgr.switch_visible(name)
    return mgr.describe(record)


@router.delete("/{name}")
async def uninstall_plugin(name: str, request: Request):
    """Unload the plugin, delete its file and drop it from the catalog."""
    mgr, record = _lookup(request, name)
    try:
        mgr.uninstall(record)
    except Exception as e:
        return JSONResponse(status_code=500, content={"detail": str(e)})
    return {"uninstalled": name}
