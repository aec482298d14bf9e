"""Per-entity branch bootstrap."""
from __future__ import annotations

import logging
from typing import Optional

from branchstore.repositories.base import DocumentStore

logger = logging.getLogger(__name__)

USER_BRANCH_PREFIX = "user/"
REGISTRY_BRANCH = "registry"

# Document layout inside the branches.
REGISTRY_PATH = "users.json"
PROFILE_PATH = "profile.json"
SHOWCASES_DIR = "showcases"


def user_branch(username: str) -> str:
    """User branch name convention."""
    return f"{USER_BRANCH_PREFIX}{username}"


def showcase_path(slug: str) -> str:
    return f"{SHOWCASES_DIR}/{slug}.json"


def username_from_branch(branch: str) -> Optional[str]:
    if not branch.startswith(USER_BRANCH_PREFIX):
        return None
    return branch[len(USER_BRANCH_PREFIX):] or None


class BranchManager:
    """Turns "does this entity have a storage unit" into one idempotent call."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    def ensure_branch(self, name: str, token: Optional[str] = None) -> bool:
        if self.store.branch_exists(name, token):
            return True
        if self.store.create_orphan_branch(name, token):
            return True
        # A concurrent caller may have created the ref first; that still counts.
        if self.store.branch_exists(name, token):
            logger.info("[branches] %s was created concurrently", name)
            return True
        logger.warning("[branches] could not bootstrap %s", name)
        return False
