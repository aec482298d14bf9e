"""Profile use cases (one ``profile.json`` per user branch)."""

from __future__ import annotations

import logging
from typing import List, Mapping, Optional, Tuple

from branchstore.core.config import Settings
from branchstore.core.utils import utc_now_iso
from branchstore.domain.models import PLANS, Profile, RegistryEntry
from branchstore.domain.slugs import is_valid_username
from branchstore.repositories.base import StoreError
from branchstore.repositories.branches import PROFILE_PATH, BranchManager, user_branch
from branchstore.repositories.documents import DocumentRepository
from branchstore.services.registry_service import RegistryService

logger = logging.getLogger(__name__)

DEV_USERNAME = "dev"
EDITABLE_FIELDS = {
    "name",
    "role",
    "bio",
    "avatar_url",
    "website",
    "location",
    "social_links",
    "skills",
    "available_for_hire",
    "plan",
}
TEXT_FIELDS = ("name", "role", "bio", "avatar_url", "website", "location")


class ProfileError(StoreError):
    """Base exception for profile workflow."""


class InvalidUsernameError(ProfileError):
    """Raised when a username cannot be used as a branch name."""


def _check_username(username: str) -> str:
    value = (username or "").strip()
    if not is_valid_username(value):
        raise InvalidUsernameError(f"Invalid username: {username!r}")
    return value


def _check_types(patch: Mapping) -> None:
    for key in TEXT_FIELDS:
        if key in patch and not isinstance(patch[key], str):
            raise ProfileError(f"{key} must be a string")
    if "skills" in patch and not (
        isinstance(patch["skills"], list) and all(isinstance(s, str) for s in patch["skills"])
    ):
        raise ProfileError("skills must be a list of strings")
    if "social_links" in patch and not (
        isinstance(patch["social_links"], dict)
        and all(isinstance(v, str) for v in patch["social_links"].values())
    ):
        raise ProfileError("social_links must map names to URLs")
    if "available_for_hire" in patch and not isinstance(patch["available_for_hire"], bool):
        raise ProfileError("available_for_hire must be true or false")


class ProfileService:
    """Create, read and update user profiles."""

    def __init__(
        self,
        documents: DocumentRepository,
        branches: BranchManager,
        registry: RegistryService,
        settings: Settings,
    ) -> None:
        self.documents = documents
        self.branches = branches
        self.registry = registry
        self.settings = settings

    def get_profile(self, username: str, *, fresh: bool = False) -> Optional[Profile]:
        if not is_valid_username(username):
            return None
        doc = self.documents.read_json(
            PROFILE_PATH,
            user_branch(username),
            max_age=None if fresh else self.settings.public_max_age,
        )
        if doc is None or not isinstance(doc.data, dict):
            return None
        return Profile.from_document(doc.data, username)

    def get_profile_by_user_id(self, user_id: str) -> Optional[Profile]:
        # user_id is the GitHub login, which is also the username.
        return self.get_profile(user_id)

    def create_profile(
        self,
        user_id: str,
        username: str,
        name: str,
        avatar_url: str = "",
        token: Optional[str] = None,
    ) -> Optional[Profile]:
        username = _check_username(username)
        branch = user_branch(username)
        if not self.branches.ensure_branch(branch, token):
            return None

        now = utc_now_iso()
        profile = Profile(
            username=username,
            name=name or username,
            avatar_url=avatar_url or "",
            created_at=now,
            updated_at=now,
        )
        wrote = self.documents.write_json(
            PROFILE_PATH, branch, profile.to_document(), token, f"Create profile for {username}"
        )
        if not wrote:
            logger.warning("[profiles] create %s failed (%s)", username, wrote.status.value)
            return None

        self.registry.upsert_entry(
            RegistryEntry(username=username, name=profile.name, avatar_url=profile.avatar_url),
            token,
        )
        return profile

    def update_profile(
        self,
        username: str,
        changes: Mapping,
        token: Optional[str] = None,
    ) -> Optional[Profile]:
        username = _check_username(username)
        patch = {k: v for k, v in (changes or {}).items() if k in EDITABLE_FIELDS}
        if "plan" in patch and patch["plan"] not in PLANS:
            patch.pop("plan")
        _check_types(patch)

        def _apply(data: dict) -> dict:
            stored = data.get("social_links")
            social = {**(stored if isinstance(stored, dict) else {}), **patch.get("social_links", {})}
            data.update(patch)
            data["social_links"] = social
            data["updated_at"] = utc_now_iso()
            return data

        result, data = self.documents.update_json(
            PROFILE_PATH,
            user_branch(username),
            _apply,
            token,
            f"Update profile for {username}",
            retries=self.settings.write_retries,
        )
        if not result:
            logger.warning("[profiles] update %s failed (%s)", username, result.status.value)
            return None

        if "name" in patch or "avatar_url" in patch:
            self.registry.sync_profile_fields(
                username,
                name=patch.get("name"),
                avatar_url=patch.get("avatar_url"),
                token=token,
            )
        return Profile.from_document(data, username)

    def get_or_create_dev_profile(self) -> Optional[Profile]:
        existing = self.get_profile(DEV_USERNAME, fresh=True)
        if existing:
            return existing
        return self.create_profile(DEV_USERNAME, DEV_USERNAME, "Local Developer", "")

    def list_public_profiles(self, limit: int = 24, offset: int = 0) -> Tuple[List[Profile], int]:
        """Page over the registry and fetch the full profile of each entry."""
        registry = self.registry.get_registry()
        total = len(registry.users)
        start = max(0, offset)
        page = registry.users[start:start + max(0, limit)]
        profiles = [self.get_profile(entry.username) for entry in page]
        return [p for p in profiles if p is not None], total
