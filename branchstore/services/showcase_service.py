"""Showcase use cases (``showcases/{slug}.json`` documents on a user branch)."""

from __future__ import annotations

import logging
from typing import List, Mapping, Optional, Tuple

from branchstore.core.config import Settings
from branchstore.core.utils import utc_now_iso
from branchstore.domain.models import SHOWCASE_STATUSES, STATUS_DRAFT, Marketplace, Profile, Showcase
from branchstore.domain.slugs import is_valid_slug, is_valid_username, slug_from_id, to_slug, unique_slug
from branchstore.repositories.base import StoreError, WriteResult
from branchstore.repositories.branches import SHOWCASES_DIR, showcase_path, user_branch
from branchstore.repositories.documents import DocumentRepository
from branchstore.services.profile_service import ProfileService
from branchstore.services.registry_service import RegistryService

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = {
    "title",
    "description",
    "url",
    "source_url",
    "post_url",
    "preview_image_url",
    "tags",
    "ai_tools",
    "col_span",
    "status",
    "sort_order",
}
TEXT_FIELDS = ("title", "description", "url", "source_url", "post_url", "preview_image_url")
LIST_FIELDS = ("tags", "ai_tools")


class ShowcaseInputError(StoreError):
    """Raised when showcase input does not satisfy the required fields."""


def _clean_changes(changes: Mapping) -> dict:
    patch = {k: v for k, v in (changes or {}).items() if k in EDITABLE_FIELDS}
    for key in TEXT_FIELDS:
        if key in patch and not isinstance(patch[key], str):
            raise ShowcaseInputError(f"{key} must be a string")
    for key in LIST_FIELDS:
        if key in patch and not (isinstance(patch[key], list) and all(isinstance(v, str) for v in patch[key])):
            raise ShowcaseInputError(f"{key} must be a list of strings")
    if "status" in patch and patch["status"] not in SHOWCASE_STATUSES:
        raise ShowcaseInputError(f"Invalid status: {patch['status']!r}")
    if "col_span" in patch and (isinstance(patch["col_span"], bool) or patch["col_span"] not in (1, 2)):
        raise ShowcaseInputError("col_span must be 1 or 2")
    if "sort_order" in patch:
        if isinstance(patch["sort_order"], bool):
            raise ShowcaseInputError("sort_order must be an integer")
        try:
            patch["sort_order"] = int(patch["sort_order"])
        except (TypeError, ValueError):
            raise ShowcaseInputError("sort_order must be an integer")
    return patch



class ShowcaseService:
    """Per-user showcase documents plus their registry side effects."""

    def __init__(
        self,
        documents: DocumentRepository,
        profiles: ProfileService,
        registry: RegistryService,
        settings: Settings,
    ) -> None:
        self.documents = documents
        self.profiles = profiles
        self.registry = registry
        self.settings = settings

    # -------------------------- reads --------------------------
    def _existing_slugs(self, username: str, token: Optional[str] = None, max_age: Optional[float] = None) -> List[str]:
        files = self.documents.store.list_files(SHOWCASES_DIR, user_branch(username), token, max_age)
        return [f.name[: -len(".json")] for f in files if f.name.endswith(".json")]

    def _read(
        self, username: str, slug: str, token: Optional[str] = None, max_age: Optional[float] = None
    ) -> Optional[Showcase]:
        doc = self.documents.read_json(showcase_path(slug), user_branch(username), token, max_age)
        if doc is None or not isinstance(doc.data, dict):
            return None
        return Showcase.from_document(doc.data, username, slug)

    def get_showcases(self, username: str, include_all: bool = False, *, fresh: bool = True) -> List[Showcase]:
        if not is_valid_username(username):
            return []
        max_age = None if fresh else self.settings.public_max_age
        showcases = []
        for slug in self._existing_slugs(username, max_age=max_age):
            showcase = self._read(username, slug, max_age=max_age)
            if showcase and (include_all or showcase.published):
                showcases.append(showcase)
        showcases.sort(key=lambda s: s.sort_order)
        return showcases

    def get_marketplace(self, username: str) -> Optional[Marketplace]:
        profile = self.profiles.get_profile(username)
        if not profile:
            return None
        return Marketplace(profile=profile, showcases=self.get_showcases(username, fresh=False))

    def get_showcase(self, username: str, slug: str) -> Optional[Tuple[Profile, Showcase]]:
        if not is_valid_slug(slug):
            return None
        profile = self.profiles.get_profile(username)
        if not profile:
            return None
        showcase = self._read(username, slug, max_age=self.settings.public_max_age)
        if not showcase or not showcase.published:
            return None
        return profile, showcase

    # -------------------------- writes --------------------------
    def create_showcase(self, username: str, data: Mapping, token: Optional[str] = None) -> Optional[Showcase]:
        if not is_valid_username(username):
            return None
        patch = _clean_changes(data)
        title = (patch.get("title") or "").strip()
        if not title or not (patch.get("url") or "").strip():
            raise ShowcaseInputError("Title and URL are required")

        branch = user_branch(username)
        base = to_slug(title)
        attempts = self.settings.write_retries + 1
        for _ in range(attempts):
            existing = self._existing_slugs(username, token)
            slug = unique_slug(base, existing)
            now = utc_now_iso()
            showcase = Showcase(slug=slug, profile_id=username, status=STATUS_DRAFT, created_at=now, updated_at=now)
            for key, value in patch.items():
                setattr(showcase, key, value)
            showcase.title = title
            if "sort_order" not in patch:
                showcase.sort_order = len(existing)
            result = self.documents.write_json(
                showcase_path(slug), branch, showcase.to_document(), token, f"Add showcase: {title}"
            )
            if result:
                self.registry.set_showcase_count(username, len(existing) + 1, token)
                return showcase
            if not result.conflict:
                logger.warning("[showcases] create %s/%s failed (%s)", username, slug, result.status.value)
                return None
            # Another writer took the slug between our listing and our write.
            logger.info("[showcases] slug %s/%s taken concurrently, re-listing", username, slug)
        return None

    def update_showcase(
        self,
        username: str,
        showcase_id: str,
        changes: Mapping,
        token: Optional[str] = None,
    ) -> Optional[Showcase]:
        slug = slug_from_id(showcase_id)
        if not is_valid_username(username) or not is_valid_slug(slug):
            return None
        patch = _clean_changes(changes)
        if "title" in patch and not (patch["title"] or "").strip():
            raise ShowcaseInputError("Title cannot be empty")

        def _apply(data: dict) -> dict:
            data.update(patch)
            data["slug"] = slug
            data["updated_at"] = utc_now_iso()
            return data

        result, data = self.documents.update_json(
            showcase_path(slug),
            user_branch(username),
            _apply,
            token,
            f"Update showcase: {patch.get('title') or slug}",
            retries=self.settings.write_retries,
        )
        if not result:
            logger.warning("[showcases] update %s/%s failed (%s)", username, slug, result.status.value)
            return None
        self.registry.refresh_showcase_count(username, token)
        return Showcase.from_document(data, username, slug)

    def delete_showcase(self, username: str, showcase_id: str, token: Optional[str] = None) -> bool:
        slug = slug_from_id(showcase_id)
        if not is_valid_username(username) or not is_valid_slug(slug):
            return False
        result: WriteResult = self.documents.delete_json(
            showcase_path(slug), user_branch(username), token, f"Delete showcase: {slug}"
        )
        if not result:
            logger.warning("[showcases] delete %s/%s failed (%s)", username, slug, result.status.value)
            return False
        self.registry.refresh_showcase_count(username, token)
        return True
