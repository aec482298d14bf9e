"""Endpoints for a signed-in builder managing their own profile and showcases."""
from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse

from branchstore.routers.deps import get_services, require_user
from branchstore.services.profile_service import ProfileError
from branchstore.services.showcase_service import ShowcaseInputError

router = APIRouter(prefix="/api/manager", tags=["manager"])


@router.get("/profile")
def get_profile(request: Request):
    username, _ = require_user(request, with_token=False)
    profile = get_services(request).profiles.get_profile(username, fresh=True)
    if not profile:
        raise HTTPException(404, "Profile not found")
    return {"profile": profile.to_dict()}


@router.post("/profile")
def create_profile(payload: dict, request: Request):
    username, token = require_user(request)
    services = get_services(request)
    try:
        profile = services.profiles.create_profile(
            username,
            username,
            str(payload.get("name") or username),
            str(payload.get("avatar_url") or ""),
            token=token,
        )
    except ProfileError as exc:
        return JSONResponse({"error": str(exc)}, status_code=400)
    if not profile:
        return JSONResponse({"error": "Failed to create profile"}, status_code=500)
    return JSONResponse({"profile": profile.to_dict()}, status_code=201)


@router.put("/profile")
def update_profile(payload: dict, request: Request):
    username, token = require_user(request)
    try:
        profile = get_services(request).profiles.update_profile(username, payload, token)
    except ProfileError as exc:
        return JSONResponse({"error": str(exc)}, status_code=400)
    if not profile:
        return JSONResponse({"error": "Failed to update profile"}, status_code=500)
    return {"profile": profile.to_dict()}


@router.get("/showcases")
def list_showcases(request: Request):
    username, _ = require_user(request, with_token=False)
    showcases = get_services(request).showcases.get_showcases(username, include_all=True)
    return {"showcases": [s.to_dict() for s in showcases], "username": username}


@router.post("/showcases")
def create_showcase(payload: dict, request: Request):
    username, token = require_user(request)
    try:
        showcase = get_services(request).showcases.create_showcase(username, payload, token)
    except ShowcaseInputError as exc:
        return JSONResponse({"error": str(exc)}, status_code=400)
    if not showcase:
        return JSONResponse({"error": "Failed to create"}, status_code=500)
    return JSONResponse({"showcase": showcase.to_dict()}, status_code=201)


@router.put("/showcases")
def update_showcase(payload: dict, request: Request):
    username, token = require_user(request)
    showcase_id = payload.pop("id", None)
    if not showcase_id:
        return JSONResponse({"error": "ID required"}, status_code=400)
    try:
        showcase = get_services(request).showcases.update_showcase(username, str(showcase_id), payload, token)
    except ShowcaseInputError as exc:
        return JSONResponse({"error": str(exc)}, status_code=400)
    if not showcase:
        return JSONResponse({"error": "Failed to update"}, status_code=500)
    return {"showcase": showcase.to_dict()}


@router.delete("/showcases")
def delete_showcase(request: Request, id: str = ""):
    username, token = require_user(request)
    if not id:
        return JSONResponse({"error": "ID required"}, status_code=400)
    if not get_services(request).showcases.delete_showcase(username, id, token):
        return JSONResponse({"error": "Failed to delete"}, status_code=500)
    return {"ok": True}
