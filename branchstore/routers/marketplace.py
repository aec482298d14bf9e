"""Public marketplace endpoints: listings, search, builder pages, tracking."""
from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse

from branchstore.core.rate_limiter import rate_limit_ip
from branchstore.routers.deps import current_username, get_services
from branchstore.services.tracking_service import split_showcase_id

router = APIRouter(prefix="/api/marketplace", tags=["marketplace"])

TRACK_TYPES = {"click", "view", "page_view"}


@router.get("/vibelopers")
def vibelopers(request: Request):
    registry = get_services(request).registry.get_registry()
    users = [u.to_dict() for u in registry.users]
    return {"vibelopers": users, "total": len(users)}


@router.get("/explore")
def explore(request: Request, limit: int = 24, offset: int = 0):
    limit = min(max(limit, 1), 100)
    profiles, total = get_services(request).profiles.list_public_profiles(limit=limit, offset=max(offset, 0))
    return {"profiles": [p.to_dict() for p in profiles], "total": total, "limit": limit, "offset": offset}


@router.get("/search")
def search(request: Request, q: str = ""):
    results = get_services(request).search.search(q)
    return {"results": [r.to_dict() for r in results], "query": q.strip()}


@router.post("/track")
def track(payload: dict, request: Request):
    rate_limit_ip(request, "track", limit=120, window_seconds=60)
    services = get_services(request)
    kind = payload.get("type")
    viewer = current_username(request)

    if kind == "page_view" and payload.get("username"):
        username = str(payload["username"])
        if viewer != username:
            services.tracking.increment_profile_views(username)
        return {"ok": True}

    showcase_id = payload.get("showcase_id")
    if not showcase_id or kind not in TRACK_TYPES:
        return JSONResponse({"error": "showcase_id and type required"}, status_code=400)
    parts = split_showcase_id(str(showcase_id))
    if not parts:
        return JSONResponse({"error": "invalid showcase_id"}, status_code=400)
    # Owners browsing their own page are not counted.
    if viewer == parts[0]:
        return {"ok": True}
    if kind == "click":
        services.tracking.track_click(showcase_id)
    else:
        services.tracking.increment_showcase_views(showcase_id)
    return {"ok": True}


@router.get("/{username}")
def marketplace(username: str, request: Request):
    page = get_services(request).showcases.get_marketplace(username)
    if not page:
        raise HTTPException(404, "Profile not found")
    return page.to_dict()


@router.get("/{username}/{slug}")
def showcase_detail(username: str, slug: str, request: Request):
    found = get_services(request).showcases.get_showcase(username, slug)
    if not found:
        raise HTTPException(404, "Showcase not found")
    profile, showcase = found
    return {"profile": profile.to_dict(), "showcase": showcase.to_dict()}
