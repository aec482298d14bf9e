from __future__ import annotations

import base64
import hashlib
import json
import posixpath
import sys
import threading
from dataclasses import replace
from pathlib import Path

import httpx
import pytest

# Make the package importable when running tests from a checkout
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from branchstore.core import config as core_config  # noqa: E402
from branchstore.core.rate_limiter import reset_rate_limits  # noqa: E402
from branchstore.repositories.github_store import GitHubStore, StoreConfig  # noqa: E402
from branchstore.repositories.memory_store import MemoryStore  # noqa: E402
from branchstore.services.factory import build_services  # noqa: E402

OWNER = "acme"
REPO = "marketplace-data"
SERVICE_TOKEN = "service-token"


def _sha(data: bytes) -> str:
    return hashlib.sha1(b"blob %d\0" % len(data) + data).hexdigest()


def _json(status: int, payload) -> httpx.Response:
    return httpx.Response(status, json=payload)


class FakeGitHub:
    """
    Just enough of the GitHub REST API for the store: branches, git objects,
    matching refs and the contents endpoint, with sha checks on writes. Labels
    and issues back the hire request log.
    """

    def __init__(self) -> None:
        self.branches: dict[str, dict[str, bytes]] = {}
        self.blobs: dict[str, bytes] = {}
        self.trees: dict[str, dict[str, str]] = {}
        self.commits: dict[str, str] = {}
        self.labels: dict[str, str] = {}
        self.issues: list[dict] = []
        self.calls: list[tuple[str, str, str | None]] = []
        # (method, endpoint) -> list of status codes to answer with before behaving normally
        self.failures: dict[tuple[str, str], list[int]] = {}
        self.offline = False
        self.last_ref_response: dict = {}
        self._lock = threading.Lock()
        self._counter = 0

    # -------------------------- helpers for tests --------------------------
    def fail(self, method: str, endpoint: str, *statuses: int) -> None:
        self.failures.setdefault((method, endpoint), []).extend(statuses)

    def put_file(self, branch: str, path: str, content: str) -> str:
        data = content.encode("utf-8")
        self.branches.setdefault(branch, {})[path] = data
        return _sha(data)

    def file_text(self, branch: str, path: str) -> str | None:
        data = self.branches.get(branch, {}).get(path)
        return data.decode("utf-8") if data is not None else None

    def count(self, method: str, endpoint: str) -> int:
        return sum(1 for m, e, _ in self.calls if m == method and e == endpoint)

    # -------------------------- transport --------------------------
    def handler(self, request: httpx.Request) -> httpx.Response:
        if self.offline:
            raise httpx.ConnectError("network down", request=request)
        prefix = f"/repos/{OWNER}/{REPO}/"
        path = request.url.path
        if not path.startswith(prefix):
            return _json(404, {"message": "Not Found"})
        rest = path[len(prefix):]
        endpoint, _, arg = rest.partition("/")
        if endpoint == "git":
            endpoint, _, arg = arg.partition("/")
            endpoint = f"git/{endpoint}"
        with self._lock:
            self.calls.append((request.method, endpoint, request.headers.get("authorization")))
            injected = self.failures.get((request.method, endpoint))
            if injected:
                return _json(injected.pop(0), {"message": "injected failure"})
            body = json.loads(request.content) if request.content else {}
            return self._dispatch(request, endpoint, arg, body)

    def _dispatch(self, request, endpoint, arg, body) -> httpx.Response:
        method = request.method
        if endpoint == "branches" and method == "GET":
            if arg in self.branches:
                return _json(200, {"name": arg})
            return _json(404, {"message": "Branch not found"})
        if endpoint == "git/blobs" and method == "POST":
            data = base64.b64decode(body["content"])
            sha = _sha(data)
            self.blobs[sha] = data
            return _json(201, {"sha": sha})
        if endpoint == "git/trees" and method == "POST":
            entries = {item["path"]: item["sha"] for item in body["tree"]}
            if any(sha not in self.blobs for sha in entries.values()):
                return _json(422, {"message": "tree.sha is not a blob"})
            sha = self._new_sha("tree")
            self.trees[sha] = entries
            return _json(201, {"sha": sha})
        if endpoint == "git/commits" and method == "POST":
            if body["tree"] not in self.trees:
                return _json(422, {"message": "Tree not found"})
            sha = self._new_sha("commit")
            self.commits[sha] = body["tree"]
            return _json(201, {"sha": sha})
        if endpoint == "git/refs" and method == "POST":
            name = body["ref"][len("refs/heads/"):]
            if name in self.branches:
                return _json(422, {"message": "Reference already exists"})
            tree = self.trees[self.commits[body["sha"]]]
            self.branches[name] = {p: self.blobs[s] for p, s in tree.items()}
            self.last_ref_response = {"ref": body["ref"], "object": {"sha": body["sha"]}}
            return _json(201, self.last_ref_response)
        if endpoint == "git/matching-refs" and method == "GET":
            prefix = arg[len("heads/"):] if arg.startswith("heads/") else arg
            names = sorted(n for n in self.branches if n.startswith(prefix))
            per_page = int(request.url.params.get("per_page", 30))
            page = int(request.url.params.get("page", 1))
            chunk = names[(page - 1) * per_page:page * per_page]
            return _json(200, [{"ref": f"refs/heads/{n}"} for n in chunk])
        if endpoint == "contents":
            return self._contents(method, arg, request, body)
        if endpoint == "labels":
            return self._labels(method, arg, body)
        if endpoint == "issues":
            return self._issues(method, arg, request, body)
        return _json(404, {"message": "Not Found"})

    def _labels(self, method, name, body) -> httpx.Response:
        if method == "GET" and name:
            if name in self.labels:
                return _json(200, {"name": name, "color": self.labels[name]})
            return _json(404, {"message": "Not Found"})
        if method == "POST" and not name:
            if body["name"] in self.labels:
                return _json(422, {"message": "Validation Failed", "errors": [{"code": "already_exists"}]})
            self.labels[body["name"]] = body["color"]
            return _json(201, {"name": body["name"], "color": body["color"]})
        return _json(404, {"message": "Not Found"})

    def _issues(self, method, arg, request, body) -> httpx.Response:
        if method == "POST" and not arg:
            number = len(self.issues) + 1
            self.issues.append({
                "number": number,
                "title": body["title"],
                "body": body.get("body") or "",
                "state": "open",
                "labels": [{"name": name} for name in body.get("labels") or []],
                "html_url": f"https://github.com/{OWNER}/{REPO}/issues/{number}",
                "created_at": f"2024-01-01T00:00:{number:02d}Z",
                "comments": 0,
                "user": {"login": "seeker-bot", "avatar_url": "https://avatars.example/seeker-bot"},
            })
            return _json(201, self.issues[-1])
        if method == "GET" and not arg:
            params = request.url.params
            wanted = {name for name in params.get("labels", "").split(",") if name}
            state = params.get("state", "open")
            found = [
                issue for issue in reversed(self.issues)
                if wanted.issubset(label["name"] for label in issue["labels"])
                and (state == "all" or issue["state"] == state)
            ]
            per_page = int(params.get("per_page", 30))
            page = int(params.get("page", 1))
            last = max(1, -(-len(found) // per_page))
            headers = {}
            if page < last:
                next_url = request.url.copy_merge_params({"page": page + 1})
                last_url = request.url.copy_merge_params({"page": last})
                headers["Link"] = f'<{next_url}>; rel="next", <{last_url}>; rel="last"'
            return httpx.Response(200, json=found[(page - 1) * per_page:page * per_page], headers=headers)
        issue = next((i for i in self.issues if str(i["number"]) == arg), None)
        if issue is None:
            return _json(404, {"message": "Not Found"})
        if method == "GET":
            return _json(200, issue)
        if method == "PATCH":
            issue["state"] = body.get("state", issue["state"])
            return _json(200, issue)
        return _json(405, {"message": "Method not allowed"})


    def _new_sha(self, kind: str) -> str:
        self._counter += 1
        return hashlib.sha1(f"{kind}-{self._counter}".encode()).hexdigest()

    def _contents(self, method, path, request, body) -> httpx.Response:
        if method == "GET":
            files = self.branches.get(request.url.params.get("ref", ""))
            if files is None:
                return _json(404, {"message": "No commit found for the ref"})
            if path in files:
                data = files[path]
                return _json(200, {
                    "type": "file",
                    "path": path,
                    "name": posixpath.basename(path),
                    "sha": _sha(data),
                    "content": base64.b64encode(data).decode("ascii"),
                    "encoding": "base64",
                })
            listing = []
            subdirs = set()
            for file_path, data in sorted(files.items()):
                parent = posixpath.dirname(file_path)
                if parent == path:
                    listing.append({"type": "file", "name": posixpath.basename(file_path), "path": file_path, "sha": _sha(data)})
                elif parent.startswith(path + "/"):
                    subdirs.add(parent[len(path) + 1:].split("/")[0])
            listing.extend({"type": "dir", "name": d, "path": f"{path}/{d}", "sha": "0" * 40} for d in sorted(subdirs))
            if not listing:
                return _json(404, {"message": "Not Found"})
            return _json(200, listing)

        files = self.branches.get(body.get("branch", ""))
        if files is None:
            return _json(404, {"message": "Branch not found"})
        current = files.get(path)
        if method == "PUT":
            if current is not None and not body.get("sha"):
                return _json(422, {"message": "\"sha\" wasn't supplied."})
            if current is None and body.get("sha"):
                return _json(422, {"message": "sha does not match"})
            if current is not None and body["sha"] != _sha(current):
                return _json(409, {"message": "does not match"})
            data = base64.b64decode(body["content"])
            files[path] = data
            return _json(201 if current is None else 200, {"content": {"path": path, "sha": _sha(data)}})
        if method == "DELETE":
            if current is None:
                return _json(404, {"message": "Not Found"})
            if body.get("sha") != _sha(current):
                return _json(409, {"message": "does not match"})
            del files[path]
            return _json(200, {"content": None})
        return _json(405, {"message": "Method not allowed"})


@pytest.fixture()
def fake_github():
    return FakeGitHub()


@pytest.fixture()
def github_store(fake_github):
    store = GitHubStore(
        StoreConfig(owner=OWNER, repo=REPO, token=SERVICE_TOKEN),
        transport=httpx.MockTransport(fake_github.handler),
    )
    yield store
    store.close()


@pytest.fixture()
def settings(monkeypatch):
    """Settings from a clean environment; cache cleared before and after."""
    for var in (
        "GITHUB_DATA_REPO",
        "GITHUB_APP_TOKEN",
        "GITHUB_CLIENT_SECRET",
        "ADMIN_USERNAMES",
        "STORAGE_BACKEND",
        "PUBLIC_URL",
        "NEXTAUTH_URL",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("GITHUB_DATA_REPO", f"{OWNER}/{REPO}")
    monkeypatch.setenv("GITHUB_APP_TOKEN", SERVICE_TOKEN)
    monkeypatch.setenv("ADMIN_USERNAMES", "root-admin")
    core_config.get_settings.cache_clear()
    yield replace(core_config.get_settings(), registry_max_age=0, public_max_age=0)
    core_config.get_settings.cache_clear()


@pytest.fixture()
def memory_store():
    return MemoryStore()


@pytest.fixture()
def services(settings, memory_store):
    return build_services(settings, memory_store)


@pytest.fixture()
def github_services(settings, github_store):
    return build_services(settings, github_store)


@pytest.fixture(autouse=True)
def _clear_rate_limits():
    reset_rate_limits()
    yield
    reset_rate_limits()
