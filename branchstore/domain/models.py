"""
Typed views of the JSON documents stored on each branch.

The stored documents never contain derived identifiers: a profile's ``id`` and
``user_id`` are its username, a showcase's ``id`` is ``username/slug``. Unknown
keys in stored documents are ignored when building these views; services work
on the raw dicts for read-modify-write so nothing is lost on update.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List, Mapping, Optional

SHOWCASE_STATUSES = ("published", "draft", "archived")
STATUS_PUBLISHED = "published"
STATUS_DRAFT = "draft"
PLANS = ("free", "pro")


def _int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _str_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, str)]


def _str_map(value: Any) -> Dict[str, str]:
    if not isinstance(value, dict):
        return {}
    return {k: v for k, v in value.items() if isinstance(k, str) and isinstance(v, str)}


def _known(cls, data: Mapping[str, Any]) -> Dict[str, Any]:
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in (data or {}).items() if k in names}


@dataclass
class Profile:
    username: str
    name: str = ""
    role: str = ""
    bio: str = ""
    avatar_url: str = ""
    website: str = ""
    location: str = ""
    social_links: Dict[str, str] = field(default_factory=dict)
    skills: List[str] = field(default_factory=list)
    available_for_hire: bool = False
    showcase_count: int = 0
    total_views: int = 0
    total_clicks: int = 0
    plan: str = "free"
    created_at: str = ""
    updated_at: str = ""

    @property
    def id(self) -> str:
        return self.username

    @property
    def user_id(self) -> str:
        return self.username

    @classmethod
    def from_document(cls, data: Mapping[str, Any], username: str) -> "Profile":
        values = _known(cls, data)
        values["username"] = username
        for counter in ("showcase_count", "total_views", "total_clicks"):
            values[counter] = _int(values.get(counter))
        values["social_links"] = _str_map(values.get("social_links"))
        values["skills"] = _str_list(values.get("skills"))
        return cls(**values)

    def to_document(self) -> Dict[str, Any]:
        return asdict(self)

    def to_dict(self) -> Dict[str, Any]:
        return {**self.to_document(), "id": self.id, "user_id": self.user_id}


@dataclass
class Showcase:
    slug: str
    profile_id: str
    title: str = ""
    description: str = ""
    url: str = ""
    source_url: str = ""
    post_url: str = ""
    preview_image_url: str = ""
    tags: List[str] = field(default_factory=list)
    ai_tools: List[str] = field(default_factory=list)
    col_span: int = 2
    status: str = STATUS_DRAFT
    sort_order: int = 0
    clicks_count: int = 0
    views_count: int = 0
    created_at: str = ""
    updated_at: str = ""

    @property
    def id(self) -> str:
        return f"{self.profile_id}/{self.slug}"

    @property
    def published(self) -> bool:
        return self.status == STATUS_PUBLISHED

    @classmethod
    def from_document(cls, data: Mapping[str, Any], username: str, slug: str) -> "Showcase":
        values = _known(cls, data)
        values["slug"] = slug
        values["profile_id"] = username
        for counter in ("sort_order", "clicks_count", "views_count"):
            values[counter] = _int(values.get(counter))
        values["col_span"] = 1 if _int(values.get("col_span")) == 1 else 2
        values["tags"] = _str_list(values.get("tags"))
        values["ai_tools"] = _str_list(values.get("ai_tools"))
        return cls(**values)

    def to_document(self) -> Dict[str, Any]:
        data = asdict(self)
        data.pop("profile_id")
        return data

    def to_dict(self) -> Dict[str, Any]:
        return {**self.to_document(), "id": self.id, "profile_id": self.profile_id}


@dataclass
class RegistryEntry:
    username: str
    name: str = ""
    avatar_url: str = ""
    showcase_count: int = 0

    @classmethod
    def from_document(cls, data: Mapping[str, Any]) -> Optional["RegistryEntry"]:
        values = _known(cls, data)
        if not values.get("username"):
            return None
        values["showcase_count"] = max(0, _int(values.get("showcase_count")))
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Registry:
    users: List[RegistryEntry] = field(default_factory=list)
    updated_at: str = ""

    @classmethod
    def from_document(cls, data: Any) -> "Registry":
        if not isinstance(data, dict):
            return cls()
        raw_users = data.get("users") if isinstance(data.get("users"), list) else []
        users = [RegistryEntry.from_document(u) for u in raw_users if isinstance(u, dict)]
        return cls(users=[u for u in users if u], updated_at=str(data.get("updated_at") or ""))

    def to_document(self) -> Dict[str, Any]:
        return {"users": [u.to_dict() for u in self.users], "updated_at": self.updated_at}

    def find(self, username: str) -> Optional[RegistryEntry]:
        for entry in self.users:
            if entry.username == username:
                return entry
        return None


@dataclass
class Marketplace:
    profile: Profile
    showcases: List[Showcase]

    def to_dict(self) -> Dict[str, Any]:
        return {"profile": self.profile.to_dict(), "showcases": [s.to_dict() for s in self.showcases]}


@dataclass
class HireRequest:
    """A seeker's request to a builder, read back from its issue."""

    issue_number: int
    name: str
    email: str
    description: str
    budget: str = ""
    timeline: str = ""
    status: str = "open"
    html_url: str = ""
    created_at: str = ""
    comments: int = 0
    seeker_github: str = ""
    seeker_avatar: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
