"""Hire requests: seekers file them publicly, builders list and close their own."""
from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from branchstore.core.rate_limiter import rate_limit_ip
from branchstore.routers.deps import get_services, require_user
from branchstore.services.hire_request_service import HireRequestInputError, UnknownBuilderError

router = APIRouter(prefix="/api/marketplace/contact", tags=["contact"])


@router.post("")
def create_request(payload: dict, request: Request):
    rate_limit_ip(request, "contact", limit=10, window_seconds=3600)
    try:
        ref = get_services(request).hire_requests.create_hire_request(payload.get("username"), payload)
    except UnknownBuilderError as exc:
        return JSONResponse({"error": str(exc)}, status_code=404)
    except HireRequestInputError as exc:
        return JSONResponse({"error": str(exc)}, status_code=400)
    if not ref:
        return JSONResponse({"error": "Failed to create request"}, status_code=500)
    return {"ok": True, "issue_number": ref.number, "html_url": ref.html_url}


@router.get("")
def list_requests(request: Request, state: str = "open"):
    username, token = require_user(request)
    try:
        requests = get_services(request).hire_requests.get_hire_requests(username, state, token)
    except HireRequestInputError as exc:
        return JSONResponse({"error": str(exc)}, status_code=400)
    return {"requests": [r.to_dict() for r in requests]}


@router.put("")
def update_request(payload: dict, request: Request):
    username, token = require_user(request)
    issue_number = payload.get("issue_number")
    state = payload.get("state")
    if not issue_number or not state:
        return JSONResponse({"error": "issue_number and state required"}, status_code=400)
    try:
        ok = get_services(request).hire_requests.update_status(username, issue_number, state, token)
    except HireRequestInputError as exc:
        return JSONResponse({"error": str(exc)}, status_code=400)
    return {"ok": ok}
