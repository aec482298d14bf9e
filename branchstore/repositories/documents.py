"""
JSON documents on top of a DocumentStore.

Every update follows the same read-modify-write cycle: read the document and
its hash, compute the new value, write it back with that hash. There is no
locking; a write carrying a stale hash is rejected by the backend and the
cycle may be retried from a fresh read.
"""
from __future__ import annotations

import copy
import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple

from branchstore.repositories.base import DocumentStore, WriteResult, WriteStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Document:
    data: Any
    sha: str


def dumps(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, indent=2)


class DocumentRepository:
    """Read/write/delete JSON documents identified by ``(branch, path)``."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    def read_json(
        self,
        path: str,
        branch: str,
        token: Optional[str] = None,
        max_age: Optional[float] = None,
    ) -> Optional[Document]:
        file = self.store.read_file(path, branch, token, max_age)
        if file is None:
            return None
        try:
            return Document(data=json.loads(file.content), sha=file.sha)
        except ValueError:
            logger.warning("[documents] parse error: %s@%s", path, branch)
            return None

    def write_json(
        self,
        path: str,
        branch: str,
        value: Any,
        token: Optional[str] = None,
        message: str = "",
        sha: Optional[str] = None,
    ) -> WriteResult:
        return self.store.write_file(path, branch, dumps(value), token, message, sha)

    def delete_json(
        self,
        path: str,
        branch: str,
        token: Optional[str] = None,
        message: str = "",
    ) -> WriteResult:
        file = self.store.read_file(path, branch, token)
        if file is None:
            return WriteResult.failed(WriteStatus.NOT_FOUND)
        return self.store.delete_file(path, branch, file.sha, token, message)

    def update_json(
        self,
        path: str,
        branch: str,
        transform: Callable[[Any], Any],
        token: Optional[str] = None,
        message: str = "",
        *,
        default: Any = None,
        retries: int = 0,
    ) -> Tuple[WriteResult, Optional[Any]]:
        """
        Apply ``transform`` to the current document and write it back.

        ``transform`` receives a private copy and must be pure: it may run once
        per attempt. When the document is missing and ``default`` is given, the
        transformed default is written as a create. Only conflicts are retried.
        """
        attempt = 0
        while True:
            current = self.read_json(path, branch, token)
            if current is None:
                if default is None:
                    return WriteResult.failed(WriteStatus.NOT_FOUND), None
                base, sha = copy.deepcopy(default), None
            else:
                base, sha = copy.deepcopy(current.data), current.sha
            updated = transform(base)
            result = self.write_json(path, branch, updated, token, message, sha)
            if result or not result.conflict or attempt >= retries:
                return result, (updated if result else None)
            attempt += 1
            logger.info("[documents] conflict on %s@%s, retry %d/%d", path, branch, attempt, retries)
