"""Wiring of the store, repositories and services from Settings."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from branchstore.core.config import Settings, get_settings
from branchstore.repositories.base import DocumentStore, StoreConfigError
from branchstore.repositories.branches import BranchManager
from branchstore.repositories.documents import DocumentRepository
from branchstore.repositories.github_store import GitHubStore, StoreConfig
from branchstore.repositories.issue_log import GitHubIssueLog, IssueLog, MemoryIssueLog
from branchstore.repositories.memory_store import MemoryStore
from branchstore.services.admin_service import AdminService
from branchstore.services.hire_request_service import HireRequestService
from branchstore.services.profile_service import ProfileService
from branchstore.services.registry_service import RegistryService
from branchstore.services.search_service import SearchService
from branchstore.services.showcase_service import ShowcaseService
from branchstore.services.tracking_service import TrackingService


@dataclass
class Services:
    settings: Settings
    store: DocumentStore
    documents: DocumentRepository
    branches: BranchManager
    registry: RegistryService
    profiles: ProfileService
    showcases: ShowcaseService
    tracking: TrackingService
    search: SearchService
    admin: AdminService
    issues: IssueLog
    hire_requests: HireRequestService

    def close(self) -> None:
        self.issues.close()
        self.store.close()


def build_store(settings: Settings) -> DocumentStore:
    if settings.storage_backend == "memory":
        return MemoryStore()
    if settings.storage_backend == "github":
        return GitHubStore(StoreConfig.from_settings(settings))
    raise StoreConfigError(f"Unknown STORAGE_BACKEND: {settings.storage_backend!r}")


def build_issue_log(store: DocumentStore) -> IssueLog:
    # Issues live on the same repository as the documents and reuse its client.
    if isinstance(store, GitHubStore):
        return GitHubIssueLog(store.config, client=store.client)
    return MemoryIssueLog()


def build_services(
    settings: Optional[Settings] = None,
    store: Optional[DocumentStore] = None,
    issues: Optional[IssueLog] = None,
) -> Services:
    settings = settings or get_settings()
    store = store or build_store(settings)
    issues = issues or build_issue_log(store)
    documents = DocumentRepository(store)
    branches = BranchManager(store)
    registry = RegistryService(documents, settings, branches)
    profiles = ProfileService(documents, branches, registry, settings)
    showcases = ShowcaseService(documents, profiles, registry, settings)
    hire_requests = HireRequestService(issues, profiles, settings)
    return Services(
        settings=settings,
        store=store,
        documents=documents,
        branches=branches,
        registry=registry,
        profiles=profiles,
        showcases=showcases,
        tracking=TrackingService(documents, settings),
        search=SearchService(registry, profiles, showcases),
        admin=AdminService(registry, profiles, showcases, settings, hire_requests),
        issues=issues,
        hire_requests=hire_requests,
    )
