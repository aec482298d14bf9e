from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse

from branchstore.routers.deps import get_services, require_user

router = APIRouter(prefix="/api/admin", tags=["admin"])


def _require_admin(request: Request):
    username, _ = require_user(request)
    services = get_services(request)
    if not services.admin.is_admin(username):
        raise HTTPException(403, "Forbidden")
    return services


@router.get("")
def admin_stats(request: Request):
    services = _require_admin(request)
    return services.admin.stats().to_dict()


@router.post("/registry/rebuild")
def rebuild_registry(request: Request):
    services = _require_admin(request)
    registry = services.registry.rebuild()
    if registry is None:
        return JSONResponse({"error": "Failed to rebuild registry"}, status_code=500)
    return {"ok": True, "total": len(registry.users)}
