"""
In-process DocumentStore.

Behaves like a conventional key/value store with version tokens: the content
hash is the git blob SHA-1 of the stored bytes, and updates/deletes must present
the current one. Used for local development (``STORAGE_BACKEND=memory``) and
tests.
"""
from __future__ import annotations

import hashlib
import posixpath
import threading
from typing import Dict, List, Optional, Tuple

from branchstore.repositories.base import (
    DocumentStore,
    FileContent,
    FileEntry,
    WriteResult,
    WriteStatus,
)

PLACEHOLDER_PATH = ".init"


def blob_sha(content: str) -> str:
    data = content.encode("utf-8")
    return hashlib.sha1(b"blob %d\0" % len(data) + data).hexdigest()


class MemoryStore(DocumentStore):
    def __init__(self) -> None:
        self._branches: Dict[str, Dict[str, Tuple[str, str]]] = {}
        self._lock = threading.Lock()

    def branch_exists(self, name: str, token: Optional[str] = None) -> bool:
        with self._lock:
            return name in self._branches

    def create_orphan_branch(self, name: str, token: Optional[str] = None) -> bool:
        with self._lock:
            if name in self._branches:
                return False
            self._branches[name] = {PLACEHOLDER_PATH: ("{}", blob_sha("{}"))}
            return True

    def list_branches(self, prefix: str = "", token: Optional[str] = None) -> List[str]:
        with self._lock:
            return sorted(name for name in self._branches if name.startswith(prefix))

    def read_file(
        self,
        path: str,
        branch: str,
        token: Optional[str] = None,
        max_age: Optional[float] = None,
    ) -> Optional[FileContent]:
        path = path.strip("/")
        with self._lock:
            files = self._branches.get(branch)
            if files is None or path not in files:
                return None
            content, sha = files[path]
            return FileContent(content=content, sha=sha, path=path)

    def write_file(
        self,
        path: str,
        branch: str,
        content: str,
        token: Optional[str] = None,
        message: str = "",
        sha: Optional[str] = None,
    ) -> WriteResult:
        path = path.strip("/")
        with self._lock:
            files = self._branches.get(branch)
            if files is None:
                return WriteResult.failed(WriteStatus.NOT_FOUND)
            current = files.get(path)
            if current is None and sha:
                return WriteResult.failed(WriteStatus.CONFLICT)
            if current is not None and current[1] != sha:
                return WriteResult.failed(WriteStatus.CONFLICT)
            new_sha = blob_sha(content)
            files[path] = (content, new_sha)
            return WriteResult.ok(new_sha)

    def delete_file(
        self,
        path: str,
        branch: str,
        sha: str,
        token: Optional[str] = None,
        message: str = "",
    ) -> WriteResult:
        path = path.strip("/")
        with self._lock:
            files = self._branches.get(branch)
            if files is None or path not in files:
                return WriteResult.failed(WriteStatus.NOT_FOUND)
            if files[path][1] != sha:
                return WriteResult.failed(WriteStatus.CONFLICT)
            del files[path]
            return WriteResult.ok()

    def list_files(
        self,
        dir_path: str,
        branch: str,
        token: Optional[str] = None,
        max_age: Optional[float] = None,
    ) -> List[FileEntry]:
        dir_path = dir_path.strip("/")
        with self._lock:
            files = self._branches.get(branch) or {}
            return [
                FileEntry(name=posixpath.basename(path), sha=sha, path=path)
                for path, (_content, sha) in sorted(files.items())
                if posixpath.dirname(path) == dir_path
            ]
