"""
Labelled issues on the data repository, used as an append-only request log.

Entries are found again by filtering on labels (all given labels must match).
Failures follow the document store's convention: they are logged and come back
as ``None``, ``[]``, ``False`` or ``0``, never as exceptions. Only a missing
token on a write raises ``StoreConfigError``.
"""
from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence
from urllib.parse import quote

import httpx

from branchstore.core.utils import utc_now_iso
from branchstore.repositories.github_api import GitHubApi, short_body as _short

logger = logging.getLogger(__name__)

ISSUE_STATES = ("open", "closed")
LIST_STATES = ("open", "closed", "all")


@dataclass(frozen=True)
class IssueRef:
    number: int
    html_url: str


@dataclass
class Issue:
    number: int
    title: str = ""
    body: str = ""
    state: str = "open"
    labels: List[str] = field(default_factory=list)
    html_url: str = ""
    created_at: str = ""
    comments: int = 0
    author: str = ""
    author_avatar: str = ""

    @classmethod
    def from_api(cls, data) -> Optional["Issue"]:
        if not isinstance(data, dict) or not isinstance(data.get("number"), int):
            return None
        user = data.get("user") if isinstance(data.get("user"), dict) else {}
        labels = []
        for label in data.get("labels") or []:
            name = label.get("name") if isinstance(label, dict) else label
            if isinstance(name, str):
                labels.append(name)
        return cls(
            number=data["number"],
            title=data.get("title") or "",
            body=data.get("body") or "",
            state=data.get("state") or "open",
            labels=labels,
            html_url=data.get("html_url") or "",
            created_at=data.get("created_at") or "",
            comments=int(data.get("comments") or 0),
            author=user.get("login") or "",
            author_avatar=user.get("avatar_url") or "",
        )


class IssueLog(ABC):
    @abstractmethod
    def ensure_label(self, name: str, color: str, description: str, token: Optional[str] = None) -> bool:
        """Create the label unless it already exists."""

    @abstractmethod
    def create_issue(
        self, title: str, body: str, labels: Sequence[str], token: Optional[str] = None
    ) -> Optional[IssueRef]:
        ...

    @abstractmethod
    def list_issues(
        self, labels: Sequence[str], state: str = "open", limit: int = 50, token: Optional[str] = None
    ) -> List[Issue]:
        """Newest first."""

    @abstractmethod
    def get_issue(self, number: int, token: Optional[str] = None) -> Optional[Issue]:
        ...

    @abstractmethod
    def set_issue_state(self, number: int, state: str, token: Optional[str] = None) -> bool:
        ...

    @abstractmethod
    def count_issues(self, labels: Sequence[str], state: str = "open", token: Optional[str] = None) -> int:
        ...

    def close(self) -> None:
        pass


class GitHubIssueLog(GitHubApi, IssueLog):
    def ensure_label(self, name: str, color: str, description: str, token: Optional[str] = None) -> bool:
        operation = f"ensure_label({name})"
        resp = self._request("GET", f"{self._prefix}/labels/{quote(name, safe='')}", token, operation=operation)
        if resp is None:
            return False
        if resp.status_code == 200:
            return True
        if resp.status_code != 404:
            logger.warning("[github] %s: HTTP %s %s", operation, resp.status_code, _short(resp))
            return False
        resp = self._request(
            "POST",
            f"{self._prefix}/labels",
            token,
            write=True,
            operation=operation,
            json={"name": name, "color": color, "description": description},
        )
        if resp is None:
            return False
        # 422 means another caller created it first.
        if resp.status_code in (201, 422):
            return True
        logger.warning("[github] %s: HTTP %s %s", operation, resp.status_code, _short(resp))
        return False

    def create_issue(
        self, title: str, body: str, labels: Sequence[str], token: Optional[str] = None
    ) -> Optional[IssueRef]:
        operation = f"create_issue({title[:40]})"
        resp = self._request(
            "POST",
            f"{self._prefix}/issues",
            token,
            write=True,
            operation=operation,
            json={"title": title, "body": body, "labels": list(labels)},
        )
        if resp is None:
            return None
        if resp.status_code != 201:
            logger.warning("[github] %s: HTTP %s %s", operation, resp.status_code, _short(resp))
            return None
        data = resp.json() or {}
        if not isinstance(data.get("number"), int):
            return None
        return IssueRef(number=data["number"], html_url=data.get("html_url") or "")

    def _list(self, labels: Sequence[str], state: str, per_page: int, token: Optional[str], operation: str):
        return self._request(
            "GET",
            f"{self._prefix}/issues",
            token,
            operation=operation,
            params={
                "labels": ",".join(labels),
                "state": state,
                "sort": "created",
                "direction": "desc",
                "per_page": per_page,
            },
        )

    def list_issues(
        self, labels: Sequence[str], state: str = "open", limit: int = 50, token: Optional[str] = None
    ) -> List[Issue]:
        operation = f"list_issues({','.join(labels)})"
        resp = self._list(labels, state, max(1, min(limit, 100)), token, operation)
        if resp is None:
            return []
        if resp.status_code != 200:
            logger.warning("[github] %s: HTTP %s %s", operation, resp.status_code, _short(resp))
            return []
        data = resp.json()
        if not isinstance(data, list):
            return []
        # The issues endpoint also returns pull requests.
        issues = [Issue.from_api(item) for item in data if isinstance(item, dict) and "pull_request" not in item]
        return [issue for issue in issues if issue]

    def get_issue(self, number: int, token: Optional[str] = None) -> Optional[Issue]:
        operation = f"get_issue({number})"
        resp = self._request("GET", f"{self._prefix}/issues/{int(number)}", token, operation=operation)
        if resp is None:
            return None
        if resp.status_code == 404:
            return None
        if resp.status_code != 200:
            logger.warning("[github] %s: HTTP %s %s", operation, resp.status_code, _short(resp))
            return None
        return Issue.from_api(resp.json())

    def set_issue_state(self, number: int, state: str, token: Optional[str] = None) -> bool:
        operation = f"set_issue_state({number}, {state})"
        resp = self._request(
            "PATCH",
            f"{self._prefix}/issues/{int(number)}",
            token,
            write=True,
            operation=operation,
            json={"state": state},
        )
        if resp is None:
            return False
        if resp.status_code != 200:
            logger.warning("[github] %s: HTTP %s %s", operation, resp.status_code, _short(resp))
            return False
        return True

    def count_issues(self, labels: Sequence[str], state: str = "open", token: Optional[str] = None) -> int:
        """One issue per page, so the page number of the ``last`` link is the total."""
        operation = f"count_issues({','.join(labels)})"
        resp = self._list(labels, state, 1, token, operation)
        if resp is None:
            return 0
        if resp.status_code != 200:
            logger.warning("[github] %s: HTTP %s %s", operation, resp.status_code, _short(resp))
            return 0
        last = resp.links.get("last")
        if last and last.get("url"):
            try:
                return int(httpx.URL(last["url"]).params.get("page", "0"))
            except ValueError:
                return 0
        data = resp.json()
        return len(data) if isinstance(data, list) else 0


class MemoryIssueLog(IssueLog):
    """In-process issue log for ``STORAGE_BACKEND=memory`` and tests."""

    def __init__(self) -> None:
        self.labels: Dict[str, str] = {}
        self._issues: Dict[int, Issue] = {}
        self._lock = threading.Lock()

    def ensure_label(self, name: str, color: str, description: str, token: Optional[str] = None) -> bool:
        with self._lock:
            self.labels.setdefault(name, color)
            return True

    def create_issue(
        self, title: str, body: str, labels: Sequence[str], token: Optional[str] = None
    ) -> Optional[IssueRef]:
        with self._lock:
            number = len(self._issues) + 1
            self._issues[number] = Issue(
                number=number,
                title=title,
                body=body,
                labels=list(labels),
                html_url=f"memory://issues/{number}",
                created_at=utc_now_iso(),
            )
            return IssueRef(number=number, html_url=self._issues[number].html_url)

    def _matching(self, labels: Sequence[str], state: str) -> List[Issue]:
        wanted = set(labels)
        found = [
            issue
            for issue in self._issues.values()
            if wanted.issubset(issue.labels) and (state == "all" or issue.state == state)
        ]
        return sorted(found, key=lambda issue: issue.number, reverse=True)

    def list_issues(
        self, labels: Sequence[str], state: str = "open", limit: int = 50, token: Optional[str] = None
    ) -> List[Issue]:
        with self._lock:
            return self._matching(labels, state)[: max(1, min(limit, 100))]

    def get_issue(self, number: int, token: Optional[str] = None) -> Optional[Issue]:
        with self._lock:
            return self._issues.get(number)

    def set_issue_state(self, number: int, state: str, token: Optional[str] = None) -> bool:
        with self._lock:
            issue = self._issues.get(number)
            if issue is None:
                return False
            issue.state = state
            return True

    def count_issues(self, labels: Sequence[str], state: str = "open", token: Optional[str] = None) -> int:
        with self._lock:
            return len(self._matching(labels, state))
