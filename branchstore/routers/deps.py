"""
Request helpers shared by the routers.

Authentication happens upstream: the gateway forwards the acting username in
``X-User`` and the user's delegated GitHub token as a bearer token. Reads never
need the user token; the store falls back to the service token.
"""
from __future__ import annotations

from typing import Optional, Tuple

from fastapi import HTTPException, Request

from branchstore.services.factory import Services

USER_HEADER = "x-user"


def get_services(request: Request) -> Services:
    services = getattr(getattr(request.app, "state", None), "services", None)
    if not services:
        raise RuntimeError("Services not configured")
    return services


def current_username(request: Request) -> Optional[str]:
    value = (request.headers.get(USER_HEADER) or "").strip()
    return value or None


def user_token(request: Request) -> Optional[str]:
    auth = request.headers.get("authorization") or ""
    scheme, _, token = auth.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def require_user(request: Request, *, with_token: bool = True) -> Tuple[str, Optional[str]]:
    username = current_username(request)
    token = user_token(request)
    if not username or (with_token and not token):
        raise HTTPException(401, "Unauthorized")
    return username, token
