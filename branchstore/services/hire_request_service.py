"""
Hire requests from seekers to builders, kept as labelled issues.

Each request is one issue labelled ``hire-request`` and ``builder:{username}``,
plus up to three ``skill:*`` labels from the builder's profile and a
``budget:*`` label when a budget is given. The issue body is a small markdown
table that is parsed back when listing.
"""
from __future__ import annotations

import logging
import re
from typing import List, Mapping, Optional

from branchstore.core.config import Settings
from branchstore.domain.models import HireRequest
from branchstore.domain.slugs import is_valid_username
from branchstore.repositories.base import StoreError
from branchstore.repositories.issue_log import ISSUE_STATES, LIST_STATES, Issue, IssueLog, IssueRef
from branchstore.services.profile_service import ProfileService

logger = logging.getLogger(__name__)

LABEL_HIRE_REQUEST = "hire-request"
LABEL_COLOR = "D80018"
LABEL_DESCRIPTION = "Hire request from a seeker"
MAX_SKILL_LABELS = 3
MAX_LABEL_LENGTH = 50
TITLE_EXCERPT = 60

_DESCRIPTION_RE = re.compile(r"## Project Request\n\n(.*?)\n\n---", re.S)
_CELL_RE = {
    key: re.compile(rf"\*\*{label}\*\* \| (.+?) \|")
    for key, label in (("name", "From"), ("email", "Email"), ("budget", "Budget"), ("timeline", "Timeline"))
}


class HireRequestInputError(StoreError):
    """Raised when a hire request is missing fields or has the wrong shape."""


class UnknownBuilderError(HireRequestInputError):
    """Raised when the addressed builder has no profile."""


def builder_label(username: str) -> str:
    return f"builder:{username}"


def _label(prefix: str, value: str) -> str:
    return f"{prefix}:{value}"[:MAX_LABEL_LENGTH]


def _cell(value: str) -> str:
    # Table cells are single-line and cannot contain the column separator.
    return " ".join(value.replace("|", "/").split())


def request_title(name: str, username: str, description: str) -> str:
    description = " ".join(description.split())
    excerpt = description[:TITLE_EXCERPT] + ("…" if len(description) > TITLE_EXCERPT else "")
    return f"[Hire] {name} → {username}: {excerpt}"


def format_request_body(
    name: str, email: str, description: str, budget: str = "", timeline: str = "", site_url: str = ""
) -> str:
    lines = [
        "## Project Request",
        "",
        description,
        "",
        "---",
        "",
        "| Field | Details |",
        "|-------|---------|",
        f"| **From** | {_cell(name)} |",
        f"| **Email** | {_cell(email)} |",
    ]
    if budget:
        lines.append(f"| **Budget** | {_cell(budget)} |")
    if timeline:
        lines.append(f"| **Timeline** | {_cell(timeline)} |")
    lines += ["", "---"]
    lines.append(f"*Submitted via [the marketplace]({site_url})*" if site_url else "*Submitted via the marketplace*")
    return "\n".join(lines)


def parse_request_body(body: str) -> dict:
    """Inverse of ``format_request_body``; bodies edited by hand degrade to defaults."""
    body = (body or "").replace("\r\n", "\n")
    match = _DESCRIPTION_RE.search(body)
    parsed = {"description": match.group(1).strip() if match else body}
    for key, pattern in _CELL_RE.items():
        found = pattern.search(body)
        parsed[key] = found.group(1) if found else ""
    parsed["name"] = parsed["name"] or "Unknown"
    return parsed


def _to_request(issue: Issue) -> HireRequest:
    parsed = parse_request_body(issue.body)
    return HireRequest(
        issue_number=issue.number,
        status=issue.state,
        html_url=issue.html_url,
        created_at=issue.created_at,
        comments=issue.comments,
        seeker_github=issue.author,
        seeker_avatar=issue.author_avatar,
        **parsed,
    )


def _text(data: Mapping, key: str, *, required: bool) -> str:
    value = data.get(key)
    if value is None:
        value = ""
    if not isinstance(value, str):
        raise HireRequestInputError(f"{key} must be a string")
    value = value.strip()
    if required and not value:
        raise HireRequestInputError("username, name, email, description required")
    return value


class HireRequestService:
    def __init__(self, issues: IssueLog, profiles: ProfileService, settings: Settings) -> None:
        self.issues = issues
        self.profiles = profiles
        self.settings = settings

    def ensure_labels(self, token: Optional[str] = None) -> bool:
        return self.issues.ensure_label(LABEL_HIRE_REQUEST, LABEL_COLOR, LABEL_DESCRIPTION, token)

    def create_hire_request(self, username: str, data: Mapping, token: Optional[str] = None) -> Optional[IssueRef]:
        username = username.strip() if isinstance(username, str) else ""
        name = _text(data, "name", required=True)
        email = _text(data, "email", required=True)
        description = _text(data, "description", required=True)
        budget = _text(data, "budget", required=False)
        timeline = _text(data, "timeline", required=False)
        if not username:
            raise HireRequestInputError("username, name, email, description required")
        if "@" not in email:
            raise HireRequestInputError("email is not valid")
        profile = self.profiles.get_profile(username) if is_valid_username(username) else None
        if not profile:
            raise UnknownBuilderError(f"Unknown builder: {username!r}")

        self.ensure_labels(token)
        labels = [LABEL_HIRE_REQUEST, builder_label(username)]
        labels += [_label("skill", skill.lower()) for skill in profile.skills[:MAX_SKILL_LABELS]]
        if budget:
            labels.append(_label("budget", _cell(budget)))

        ref = self.issues.create_issue(
            request_title(_cell(name), username, description),
            format_request_body(name, email, description, budget, timeline, self.settings.public_url),
            labels,
            token,
        )
        if ref is None:
            logger.warning("[hire] request to %s could not be filed", username)
            return None
        logger.info("[hire] request #%s filed for %s", ref.number, username)
        return ref

    def get_hire_requests(self, username: str, state: str = "open", token: Optional[str] = None) -> List[HireRequest]:
        if state not in LIST_STATES:
            raise HireRequestInputError(f"Invalid state: {state!r}")
        if not is_valid_username(username):
            return []
        issues = self.issues.list_issues([LABEL_HIRE_REQUEST, builder_label(username)], state, token=token)
        return [_to_request(issue) for issue in issues]

    def update_status(self, username: str, issue_number: int, state: str, token: Optional[str] = None) -> bool:
        """Close or reopen one of ``username``'s requests; other issues are left alone."""
        if state not in ISSUE_STATES:
            raise HireRequestInputError(f"Invalid state: {state!r}")
        if isinstance(issue_number, bool) or not isinstance(issue_number, int) or issue_number < 1:
            raise HireRequestInputError("issue_number must be a positive integer")
        issue = self.issues.get_issue(issue_number, token)
        if issue is None or not {LABEL_HIRE_REQUEST, builder_label(username)}.issubset(issue.labels):
            logger.warning("[hire] %s cannot update issue #%s", username, issue_number)
            return False
        return self.issues.set_issue_state(issue_number, state, token)

    def open_request_count(self, token: Optional[str] = None) -> int:
        return self.issues.count_issues([LABEL_HIRE_REQUEST], "open", token)
