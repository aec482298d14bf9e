"""
Storage contract shared by every backend.

A backend stores UTF-8 files at ``(branch, path)``. Each stored file carries an
opaque content hash; updates and deletes must present the hash obtained from the
latest read, otherwise the backend rejects them (optimistic concurrency).
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional


class StoreError(Exception):
    """Base exception for the persistence layer."""


class StoreConfigError(StoreError):
    """Raised when the store cannot be used because configuration is missing."""


class WriteStatus(str, Enum):
    OK = "ok"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class WriteResult:
    """Outcome of a write or delete. Truthy only when the backend accepted it."""

    status: WriteStatus
    sha: Optional[str] = None

    def __bool__(self) -> bool:
        return self.status is WriteStatus.OK

    @property
    def conflict(self) -> bool:
        return self.status is WriteStatus.CONFLICT

    @classmethod
    def ok(cls, sha: Optional[str] = None) -> "WriteResult":
        return cls(WriteStatus.OK, sha)

    @classmethod
    def failed(cls, status: WriteStatus) -> "WriteResult":
        return cls(status, None)


@dataclass(frozen=True)
class FileContent:
    content: str
    sha: str
    path: str


@dataclass(frozen=True)
class FileEntry:
    name: str
    sha: str
    path: str


class DocumentStore(ABC):
    """Branch/document store. Expected outcomes are return values, never exceptions."""

    @abstractmethod
    def branch_exists(self, name: str, token: Optional[str] = None) -> bool:
        ...

    @abstractmethod
    def create_orphan_branch(self, name: str, token: Optional[str] = None) -> bool:
        ...

    @abstractmethod
    def list_branches(self, prefix: str = "", token: Optional[str] = None) -> List[str]:
        ...

    @abstractmethod
    def read_file(
        self,
        path: str,
        branch: str,
        token: Optional[str] = None,
        max_age: Optional[float] = None,
    ) -> Optional[FileContent]:
        ...

    @abstractmethod
    def write_file(
        self,
        path: str,
        branch: str,
        content: str,
        token: Optional[str] = None,
        message: str = "",
        sha: Optional[str] = None,
    ) -> WriteResult:
        ...

    @abstractmethod
    def delete_file(
        self,
        path: str,
        branch: str,
        sha: str,
        token: Optional[str] = None,
        message: str = "",
    ) -> WriteResult:
        ...

    @abstractmethod
    def list_files(
        self,
        dir_path: str,
        branch: str,
        token: Optional[str] = None,
        max_age: Optional[float] = None,
    ) -> List[FileEntry]:
        ...

    def close(self) -> None:
        """Release transport resources, if any."""
