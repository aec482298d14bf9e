"""
GitHub branch-based document store.

Uses a single GitHub repository as the data layer, one branch per entity:
- ``user/{username}`` branches hold ``profile.json`` + ``showcases/*.json``
- the ``registry`` branch holds the global ``users.json`` index
- reads fall back to the service token (or go unauthenticated for public repos)
- writes attributable to an end user carry that user's delegated token
"""
from __future__ import annotations

import base64
import logging
import posixpath
from typing import List, Optional
from urllib.parse import quote

import httpx

from branchstore.core.cache import ReadCache
from branchstore.repositories.base import (
    DocumentStore,
    FileContent,
    FileEntry,
    WriteResult,
    WriteStatus,
)
from branchstore.repositories.github_api import GitHubApi, StoreConfig, short_body as _short

logger = logging.getLogger(__name__)

PLACEHOLDER_PATH = ".init"
PLACEHOLDER_CONTENT = "{}"
CONFLICT_STATUSES = {409, 422}


def _b64encode(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


class GitHubStore(GitHubApi, DocumentStore):
    """DocumentStore backed by the GitHub contents and git-object REST endpoints."""

    def __init__(
        self,
        config: StoreConfig,
        *,
        transport: httpx.BaseTransport | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        super().__init__(config, transport=transport, client=client)
        self._cache = ReadCache()

    # -------------------------- plumbing --------------------------
    def _contents_url(self, path: str) -> str:
        return f"{self._prefix}/contents/{quote(path.strip('/'), safe='/')}"

    def _invalidate(self, path: str, branch: str) -> None:
        path = path.strip("/")
        self._cache.invalidate(("file", branch, path), ("dir", branch, posixpath.dirname(path)))

    # -------------------------- branches --------------------------
    def branch_exists(self, name: str, token: Optional[str] = None) -> bool:
        operation = f"branch_exists({name})"
        resp = self._request(
            "GET", f"{self._prefix}/branches/{quote(name, safe='')}", token, operation=operation
        )
        if resp is None:
            return False
        if resp.status_code == 200:
            return True
        if resp.status_code != 404:
            logger.warning("[github] %s: HTTP %s %s", operation, resp.status_code, _short(resp))
        return False

    def _create_object(self, kind: str, payload: dict, token: Optional[str], branch: str) -> Optional[str]:
        operation = f"create_orphan_branch({branch}) {kind}"
        resp = self._request(
            "POST", f"{self._prefix}/git/{kind}", token, write=True, operation=operation, json=payload
        )
        if resp is None:
            return None
        if resp.status_code not in (200, 201):
            logger.warning("[github] %s: HTTP %s %s", operation, resp.status_code, _short(resp))
            return None
        data = resp.json() or {}
        # git/refs answers with the ref; its target sha sits under "object".
        return data.get("sha") or (data.get("object") or {}).get("sha")

    def create_orphan_branch(self, name: str, token: Optional[str] = None) -> bool:
        # GitHub rejects empty trees, so the first commit carries a placeholder blob.
        blob_sha = self._create_object(
            "blobs", {"content": _b64encode(PLACEHOLDER_CONTENT), "encoding": "base64"}, token, name
        )
        if not blob_sha:
            return False
        tree_sha = self._create_object(
            "trees",
            {"tree": [{"path": PLACEHOLDER_PATH, "mode": "100644", "type": "blob", "sha": blob_sha}]},
            token,
            name,
        )
        if not tree_sha:
            return False
        commit_sha = self._create_object(
            "commits",
            {"message": f"Initialize branch {name}", "tree": tree_sha, "parents": []},
            token,
            name,
        )
        if not commit_sha:
            return False
        ref_sha = self._create_object("refs", {"ref": f"refs/heads/{name}", "sha": commit_sha}, token, name)
        if not ref_sha:
            return False
        logger.info("[github] created orphan branch %s", name)
        return True

    def list_branches(self, prefix: str = "", token: Optional[str] = None) -> List[str]:
        operation = f"list_branches({prefix})"
        url = f"{self._prefix}/git/matching-refs/heads/{quote(prefix, safe='/')}"
        names: List[str] = []
        page = 1
        per_page = 100
        while True:
            resp = self._request(
                "GET", url, token, operation=operation, params={"per_page": per_page, "page": page}
            )
            if resp is None:
                return []
            if resp.status_code != 200:
                logger.warning("[github] %s: HTTP %s %s", operation, resp.status_code, _short(resp))
                return []
            data = resp.json()
            if not isinstance(data, list):
                return []
            for item in data:
                ref = (item or {}).get("ref") or ""
                if ref.startswith("refs/heads/"):
                    names.append(ref[len("refs/heads/"):])
            if len(data) < per_page:
                return names
            page += 1

    # -------------------------- files --------------------------
    def read_file(
        self,
        path: str,
        branch: str,
        token: Optional[str] = None,
        max_age: Optional[float] = None,
    ) -> Optional[FileContent]:
        path = path.strip("/")
        key = ("file", branch, path)
        if max_age is not None:
            cached = self._cache.get(key, max_age)
            if cached is not None:
                return cached
        operation = f"read_file({path}, {branch})"
        resp = self._request("GET", self._contents_url(path), token, operation=operation, params={"ref": branch})
        if resp is None:
            return None
        if resp.status_code == 404:
            return None
        if resp.status_code != 200:
            logger.warning("[github] %s: HTTP %s %s", operation, resp.status_code, _short(resp))
            return None
        data = resp.json()
        if not isinstance(data, dict) or data.get("type") != "file":
            return None
        try:
            content = base64.b64decode(data.get("content") or "").decode("utf-8")
        except (ValueError, UnicodeDecodeError) as exc:
            logger.warning("[github] %s: undecodable content: %s", operation, exc)
            return None
        result = FileContent(content=content, sha=data.get("sha") or "", path=data.get("path") or path)
        self._cache.put(key, result)
        return result

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
        operation = f"write_file({path}, {branch})"
        body = {
            "message": message or f"Update {path}",
            "content": _b64encode(content),
            "branch": branch,
        }
        if sha:
            body["sha"] = sha
        resp = self._request("PUT", self._contents_url(path), token, write=True, operation=operation, json=body)
        self._invalidate(path, branch)
        if resp is None:
            return WriteResult.failed(WriteStatus.UNAVAILABLE)
        if resp.status_code in (200, 201):
            new_sha = ((resp.json() or {}).get("content") or {}).get("sha")
            return WriteResult.ok(new_sha)
        return self._failure(operation, resp)

    def delete_file(
        self,
        path: str,
        branch: str,
        sha: str,
        token: Optional[str] = None,
        message: str = "",
    ) -> WriteResult:
        path = path.strip("/")
        operation = f"delete_file({path}, {branch})"
        body = {"message": message or f"Delete {path}", "sha": sha, "branch": branch}
        resp = self._request(
            "DELETE", self._contents_url(path), token, write=True, operation=operation, json=body
        )
        self._invalidate(path, branch)
        if resp is None:
            return WriteResult.failed(WriteStatus.UNAVAILABLE)
        if resp.status_code == 200:
            return WriteResult.ok()
        return self._failure(operation, resp)

    def _failure(self, operation: str, resp: httpx.Response) -> WriteResult:
        if resp.status_code in CONFLICT_STATUSES:
            logger.info("[github] %s: rejected, stale or missing sha (HTTP %s)", operation, resp.status_code)
            return WriteResult.failed(WriteStatus.CONFLICT)
        logger.warning("[github] %s: HTTP %s %s", operation, resp.status_code, _short(resp))
        if resp.status_code == 404:
            return WriteResult.failed(WriteStatus.NOT_FOUND)
        return WriteResult.failed(WriteStatus.UNAVAILABLE)

    def list_files(
        self,
        dir_path: str,
        branch: str,
        token: Optional[str] = None,
        max_age: Optional[float] = None,
    ) -> List[FileEntry]:
        dir_path = dir_path.strip("/")
        key = ("dir", branch, dir_path)
        if max_age is not None:
            cached = self._cache.get(key, max_age)
            if cached is not None:
                return list(cached)
        operation = f"list_files({dir_path}, {branch})"
        resp = self._request("GET", self._contents_url(dir_path), token, operation=operation, params={"ref": branch})
        if resp is None:
            return []
        if resp.status_code != 200:
            if resp.status_code != 404:
                logger.warning("[github] %s: HTTP %s %s", operation, resp.status_code, _short(resp))
            return []
        data = resp.json()
        if not isinstance(data, list):
            return []
        entries = [
            FileEntry(name=item.get("name", ""), sha=item.get("sha", ""), path=item.get("path", ""))
            for item in data
            if isinstance(item, dict) and item.get("type") == "file"
        ]
        self._cache.put(key, tuple(entries))
        return entries
