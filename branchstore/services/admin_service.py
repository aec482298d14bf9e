"""
Admin dashboard numbers.

Totals are re-derived from the per-branch documents; the registry only supplies
the list of usernames to visit. Open hire requests are counted on the issue log.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import List, Optional

from branchstore.core.config import Settings
from branchstore.services.hire_request_service import HireRequestService
from branchstore.services.profile_service import ProfileService
from branchstore.services.registry_service import RegistryService
from branchstore.services.showcase_service import ShowcaseService


@dataclass
class BuilderStats:
    username: str
    name: str
    avatar_url: str
    role: str
    showcase_count: int
    total_views: int
    available_for_hire: bool
    created_at: str


@dataclass
class AdminStats:
    total_builders: int
    total_showcases: int
    total_views: int
    open_hire_requests: int
    builders: List[BuilderStats]

    def to_dict(self) -> dict:
        data = asdict(self)
        builders = data.pop("builders")
        return {"stats": data, "builders": builders}


class AdminService:
    def __init__(
        self,
        registry: RegistryService,
        profiles: ProfileService,
        showcases: ShowcaseService,
        settings: Settings,
        hire_requests: Optional[HireRequestService] = None,
    ) -> None:
        self.registry = registry
        self.profiles = profiles
        self.showcases = showcases
        self.settings = settings
        self.hire_requests = hire_requests

    def is_admin(self, username: Optional[str]) -> bool:
        if not username:
            return False
        return username.strip().lower() in self.settings.admin_usernames

    def stats(self) -> AdminStats:
        users = self.registry.get_registry().users
        builders = []
        total_showcases = 0
        total_views = 0
        for entry in users:
            profile = self.profiles.get_profile(entry.username, fresh=True)
            published = self.showcases.get_showcases(entry.username)
            total_showcases += len(published)
            views = profile.total_views if profile else 0
            total_views += views
            builders.append(
                BuilderStats(
                    username=entry.username,
                    name=(profile.name if profile else "") or entry.name,
                    avatar_url=(profile.avatar_url if profile else "") or entry.avatar_url,
                    role=profile.role if profile else "",
                    showcase_count=len(published),
                    total_views=views,
                    available_for_hire=bool(profile and profile.available_for_hire),
                    created_at=profile.created_at if profile else "",
                )
            )
        builders.sort(key=lambda b: b.total_views, reverse=True)
        return AdminStats(
            total_builders=len(users),
            total_showcases=total_showcases,
            total_views=total_views,
            open_hire_requests=self.hire_requests.open_request_count() if self.hire_requests else 0,
            builders=builders,
        )
