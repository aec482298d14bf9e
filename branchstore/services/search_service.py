"""Client-side search over builders and their published showcases."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Iterable, List, Optional

from branchstore.services.profile_service import ProfileService
from branchstore.services.registry_service import RegistryService
from branchstore.services.showcase_service import ShowcaseService

MIN_QUERY_LENGTH = 2
MAX_RESULTS = 20


@dataclass
class SearchResult:
    type: str
    title: str
    subtitle: str
    url: str
    avatar_url: str = ""
    tags: List[str] = field(default_factory=list)
    score: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


def match_score(query: str, *values: Optional[str]) -> int:
    q = query.lower()
    score = 0
    for value in values:
        if not value:
            continue
        v = value.lower()
        if v == q:
            score += 10
        elif v.startswith(q):
            score += 5
        elif q in v:
            score += 2
    return score


def match_items(query: str, items: Iterable[str]) -> int:
    q = query.lower()
    score = 0
    for item in items or []:
        i = str(item).lower()
        if i == q:
            score += 8
        elif i.startswith(q):
            score += 4
        elif q in i:
            score += 1
    return score


class SearchService:
    def __init__(self, registry: RegistryService, profiles: ProfileService, showcases: ShowcaseService) -> None:
        self.registry = registry
        self.profiles = profiles
        self.showcases = showcases

    def search(self, query: str | None) -> List[SearchResult]:
        q = (query or "").strip()
        if len(q) < MIN_QUERY_LENGTH:
            return []
        results: List[SearchResult] = []
        for entry in self.registry.get_registry().users:
            profile = self.profiles.get_profile(entry.username)
            if not profile:
                continue
            score = (
                match_score(q, profile.name, profile.username)
                + match_score(q, profile.role)
                + match_items(q, profile.skills)
            )
            if score > 0:
                results.append(
                    SearchResult(
                        type="builder",
                        title=profile.name,
                        subtitle=profile.role or "Builder",
                        url=f"/m/{profile.username}",
                        avatar_url=profile.avatar_url,
                        tags=profile.skills[:4],
                        score=score,
                    )
                )
            for showcase in self.showcases.get_showcases(profile.username, fresh=False):
                s_score = (
                    match_score(q, showcase.title)
                    + match_score(q, showcase.description)
                    + match_items(q, showcase.tags)
                    + match_items(q, showcase.ai_tools)
                )
                if s_score > 0:
                    results.append(
                        SearchResult(
                            type="showcase",
                            title=showcase.title,
                            subtitle=f"by {profile.name}",
                            url=f"/m/{profile.username}/{showcase.slug}",
                            avatar_url=profile.avatar_url,
                            tags=showcase.tags[:4],
                            score=s_score,
                        )
                    )
        results.sort(key=lambda r: r.score, reverse=True)
        return results[:MAX_RESULTS]
