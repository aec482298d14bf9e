"""Domain helpers for slug derivation and validation."""
from __future__ import annotations

import re
import unicodedata
from typing import Iterable

SLUG_PATTERN = re.compile(r"[a-z0-9](?:[a-z0-9-]{0,98}[a-z0-9])?")
# GitHub logins: alphanumerics and single hyphens, at most 39 chars.
USERNAME_PATTERN = re.compile(r"[A-Za-z0-9](?:[A-Za-z0-9-]{0,37}[A-Za-z0-9])?")
DEFAULT_SLUG = "project"
SLUG_MAX_LENGTH = 80


def to_slug(title: str | None) -> str:
    """Derive a URL-safe slug from a human title ("My Cool App" -> "my-cool-app")."""
    text = unicodedata.normalize("NFKD", title or "").encode("ascii", "ignore").decode("ascii")
    slug = re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")
    slug = slug[:SLUG_MAX_LENGTH].rstrip("-")
    return slug or DEFAULT_SLUG


def unique_slug(base: str, existing: Iterable[str]) -> str:
    """Return ``base`` or the first free ``base-2``, ``base-3``, ... not in ``existing``."""
    taken = set(existing)
    if base not in taken:
        return base
    n = 2
    while f"{base}-{n}" in taken:
        n += 1
    return f"{base}-{n}"


def is_valid_slug(value: str | None) -> bool:
    """Return True when slug is safe to use as a file name."""
    if not value:
        return False
    return bool(SLUG_PATTERN.fullmatch(value))


def is_valid_username(value: str | None) -> bool:
    if not value:
        return False
    return bool(USERNAME_PATTERN.fullmatch(value))


def slug_from_id(showcase_id: str | None) -> str:
    """Accept either ``username/slug`` or a bare slug."""
    value = (showcase_id or "").strip()
    return value.rsplit("/", 1)[-1] if "/" in value else value
