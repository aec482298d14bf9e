"""
Global user index (the registry).

One document, ``users.json`` on the ``registry`` branch, denormalizes a summary
of every user so listings do not have to scan all branches. It is a cache, not
a ledger: it is updated after the per-branch write in a separate round trip,
an update that keeps losing the concurrency race is dropped, and counts are
always re-derived from the branch listings rather than incremented.
"""
from __future__ import annotations

import logging
from typing import Callable, List, Optional

from branchstore.core.config import Settings
from branchstore.core.utils import utc_now_iso
from branchstore.domain.models import Profile, Registry, RegistryEntry
from branchstore.repositories.base import WriteStatus
from branchstore.repositories.branches import (
    PROFILE_PATH,
    BranchManager,
    REGISTRY_BRANCH,
    REGISTRY_PATH,
    SHOWCASES_DIR,
    USER_BRANCH_PREFIX,
    user_branch,
    username_from_branch,
)
from branchstore.repositories.documents import DocumentRepository

logger = logging.getLogger(__name__)


def count_documents(entries) -> int:
    return sum(1 for entry in entries if entry.name.endswith(".json"))


class RegistryService:
    """Reads and best-effort maintenance of the registry document."""

    def __init__(
        self,
        documents: DocumentRepository,
        settings: Settings,
        branches: Optional[BranchManager] = None,
    ) -> None:
        self.documents = documents
        self.settings = settings
        self.branches = branches or BranchManager(documents.store)

    def get_registry(self, token: Optional[str] = None) -> Registry:
        doc = self.documents.read_json(
            REGISTRY_PATH, REGISTRY_BRANCH, token, max_age=self.settings.registry_max_age
        )
        if doc is None:
            return Registry(updated_at=utc_now_iso())
        return Registry.from_document(doc.data)

    def update_registry(
        self,
        transform: Callable[[Registry], Registry],
        token: Optional[str] = None,
        message: str = "Update registry",
    ) -> bool:
        def _apply(data):
            registry = transform(Registry.from_document(data))
            registry.updated_at = utc_now_iso()
            return registry.to_document()

        def _write():
            result, _ = self.documents.update_json(
                REGISTRY_PATH,
                REGISTRY_BRANCH,
                _apply,
                token,
                message,
                default=Registry().to_document(),
                retries=self.settings.write_retries,
            )
            return result

        result = _write()
        # First write on a fresh data repository: bootstrap the branch once.
        if result.status is WriteStatus.NOT_FOUND and self.branches.ensure_branch(REGISTRY_BRANCH, token):
            result = _write()
        if not result:
            logger.warning("[registry] update dropped (%s): %s", result.status.value, message)
        return bool(result)

    # -------------------------- transforms --------------------------
    def upsert_entry(self, entry: RegistryEntry, token: Optional[str] = None) -> bool:
        def _upsert(reg: Registry) -> Registry:
            reg.users = [u for u in reg.users if u.username != entry.username] + [entry]
            return reg

        return self.update_registry(_upsert, token, f"Register user {entry.username}")

    def sync_profile_fields(
        self,
        username: str,
        *,
        name: Optional[str] = None,
        avatar_url: Optional[str] = None,
        token: Optional[str] = None,
    ) -> bool:
        if name is None and avatar_url is None:
            return True

        def _sync(reg: Registry) -> Registry:
            for entry in reg.users:
                if entry.username == username:
                    if name is not None:
                        entry.name = name
                    if avatar_url is not None:
                        entry.avatar_url = avatar_url
            return reg

        return self.update_registry(_sync, token, f"Update registry for {username}")

    def set_showcase_count(self, username: str, count: int, token: Optional[str] = None) -> bool:
        def _count(reg: Registry) -> Registry:
            for entry in reg.users:
                if entry.username == username:
                    entry.showcase_count = max(0, count)
            return reg

        return self.update_registry(_count, token, f"Update showcase count for {username}")

    def refresh_showcase_count(self, username: str, token: Optional[str] = None) -> bool:
        """Store the count found by re-listing the user's branch."""
        files = self.documents.store.list_files(SHOWCASES_DIR, user_branch(username), token)
        return self.set_showcase_count(username, count_documents(files), token)

    def derive_entries(self, token: Optional[str] = None) -> List[RegistryEntry]:
        """
        Recompute registry entries from the per-branch documents.

        Lists every ``user/*`` branch and reads its profile and showcase
        listing. Branches without a readable profile are skipped.
        """
        entries = []
        for branch in self.documents.store.list_branches(USER_BRANCH_PREFIX, token):
            username = username_from_branch(branch)
            if not username:
                continue
            doc = self.documents.read_json(PROFILE_PATH, branch, token)
            if doc is None or not isinstance(doc.data, dict):
                logger.info("[registry] rebuild: skipping %s, no profile", branch)
                continue
            profile = Profile.from_document(doc.data, username)
            count = count_documents(self.documents.store.list_files(SHOWCASES_DIR, branch, token))
            entries.append(
                RegistryEntry(
                    username=username,
                    name=profile.name,
                    avatar_url=profile.avatar_url,
                    showcase_count=count,
                )
            )
        return entries

    def rebuild(self, token: Optional[str] = None) -> Optional[Registry]:
        """Recovery path for drift: replace the index wholesale with derived entries."""
        entries = self.derive_entries(token)
        rebuilt = Registry(users=entries)

        def _replace(_reg: Registry) -> Registry:
            return Registry(users=list(rebuilt.users))

        if not self.update_registry(_replace, token, "Rebuild registry from branches"):
            return None
        logger.info("[registry] rebuilt with %d users", len(entries))
        return rebuilt
