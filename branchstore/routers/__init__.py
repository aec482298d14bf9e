"""
FastAPI routers grouped by audience (public marketplace, builder manager, admin).

Each module exposes an APIRouter included by the application factory in
``branchstore.app``. Routers only translate HTTP to service calls.
"""
