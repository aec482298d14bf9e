"""
View/click counters.

Every increment is a full read-modify-write round trip with the service token;
events are not batched. Failures are logged and dropped: a lost view never
fails the request that produced it.
"""
from __future__ import annotations

import logging
from typing import Optional

from branchstore.core.config import Settings
from branchstore.domain.slugs import is_valid_slug, is_valid_username
from branchstore.repositories.branches import PROFILE_PATH, showcase_path, user_branch
from branchstore.repositories.documents import DocumentRepository

logger = logging.getLogger(__name__)


def split_showcase_id(showcase_id: str | None) -> Optional[tuple]:
    """``"username/slug"`` -> ``("username", "slug")`` or None when malformed."""
    username, sep, slug = (showcase_id or "").partition("/")
    if not sep or not is_valid_username(username) or not is_valid_slug(slug):
        return None
    return username, slug


class TrackingService:
    def __init__(self, documents: DocumentRepository, settings: Settings) -> None:
        self.documents = documents
        self.settings = settings

    def _increment(self, path: str, branch: str, counter: str, message: str) -> bool:
        def _bump(data: dict) -> dict:
            try:
                current = int(data.get(counter) or 0)
            except (TypeError, ValueError):
                current = 0
            data[counter] = current + 1
            return data

        result, _ = self.documents.update_json(
            path, branch, _bump, None, message, retries=self.settings.write_retries
        )
        if not result:
            logger.info("[tracking] %s %s@%s dropped (%s)", counter, path, branch, result.status.value)
        return bool(result)

    def track_click(self, showcase_id: str) -> bool:
        parts = split_showcase_id(showcase_id)
        if not parts:
            return False
        username, slug = parts
        branch = user_branch(username)
        clicked = self._increment(showcase_path(slug), branch, "clicks_count", f"Track click: {slug}")
        if not clicked:
            return False
        self._increment(PROFILE_PATH, branch, "total_clicks", f"Track click on profile: {username}")
        return True

    def increment_showcase_views(self, showcase_id: str) -> bool:
        parts = split_showcase_id(showcase_id)
        if not parts:
            return False
        username, slug = parts
        return self._increment(showcase_path(slug), user_branch(username), "views_count", f"Track view: {slug}")

    def increment_profile_views(self, username: str) -> bool:
        if not is_valid_username(username):
            return False
        return self._increment(
            PROFILE_PATH, user_branch(username), "total_views", f"Track profile view: {username}"
        )
