#!/usr/bin/env python3
"""
Seed demo builders into the data repository (branches, profiles, showcases,
registry). Existing documents are overwritten with the seed values.

Usage:
  python scripts/seed.py [--file seed.json]

The optional file holds a list of {"profile": {...}, "showcases": [{...}]}.
"""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from branchstore.core.config import get_settings
from branchstore.core.log import configure_logging
from branchstore.core.utils import utc_now_iso
from branchstore.domain.models import Profile, RegistryEntry, Showcase
from branchstore.domain.slugs import to_slug
from branchstore.repositories.branches import PROFILE_PATH, showcase_path, user_branch
from branchstore.services.factory import Services, build_services

DEMO_USERS = [
    {
        "profile": {
            "username": "vibecoder-alice",
            "name": "Alice Chen",
            "role": "Frontend Engineer",
            "bio": "Crafting interfaces that feel alive. React, Three.js, creative coding.",
            "avatar_url": "https://api.dicebear.com/7.x/avataaars/svg?seed=alice",
            "skills": ["react", "three.js", "webgl"],
            "plan": "pro",
        },
        "showcases": [
            {
                "title": "Particle Playground",
                "description": "Interactive WebGL particle system with physics simulation",
                "url": "https://particles.alice.dev",
                "source_url": "https://github.com/alice/particle-playground",
                "tags": ["three.js", "webgl", "creative"],
                "status": "published",
            },
            {
                "title": "Vibe Dashboard",
                "description": "Real-time analytics dashboard with animated charts",
                "url": "https://dashboard.alice.dev",
                "tags": ["react", "charts", "real-time"],
                "status": "published",
            },
        ],
    },
    {
        "profile": {
            "username": "vibecoder-bob",
            "name": "Bob Martinez",
            "role": "Full Stack Builder",
            "bio": "Ship fast, learn faster. Next.js, Rust, open source.",
            "avatar_url": "https://api.dicebear.com/7.x/avataaars/svg?seed=bob",
            "skills": ["rust", "nextjs"],
        },
        "showcases": [
            {
                "title": "CLI Toolkit",
                "description": "Beautiful terminal UIs for Node.js applications",
                "url": "https://cli-toolkit.bob.dev",
                "tags": ["cli", "node", "terminal"],
                "status": "published",
            },
            {
                "title": "API Gateway",
                "description": "Lightweight API gateway with rate limiting and caching",
                "url": "https://gateway.bob.dev",
                "tags": ["rust", "api", "backend"],
                "status": "draft",
            },
        ],
    },
]


def put_document(services: Services, path: str, branch: str, value: dict, message: str) -> bool:
    current = services.documents.read_json(path, branch)
    result = services.documents.write_json(
        path, branch, value, message=message, sha=current.sha if current else None
    )
    return bool(result)


def seed_user(services: Services, seed: dict, now: str) -> RegistryEntry:
    raw = dict(seed["profile"])
    username = raw.pop("username")
    branch = user_branch(username)
    if not services.branches.ensure_branch(branch):
        raise SystemExit(f"Could not create branch {branch}")

    profile = Profile.from_document({**raw, "created_at": now, "updated_at": now}, username)
    for order, item in enumerate(seed.get("showcases") or []):
        slug = to_slug(item["title"])
        showcase = Showcase.from_document(
            {**item, "sort_order": order, "created_at": now, "updated_at": now}, username, slug
        )
        ok = put_document(services, showcase_path(slug), branch, showcase.to_document(), f"Seed: {showcase.title}")
        print(f"  {'+' if ok else '!'} showcases/{slug}.json")
    profile.showcase_count = len(seed.get("showcases") or [])
    ok = put_document(services, PROFILE_PATH, branch, profile.to_document(), f"Seed profile: {profile.name}")
    print(f"  {'+' if ok else '!'} profile.json")
    return RegistryEntry(
        username=username,
        name=profile.name,
        avatar_url=profile.avatar_url,
        showcase_count=profile.showcase_count,
    )


def main() -> None:
    ap = argparse.ArgumentParser(description="Seed demo data into the data repository")
    ap.add_argument("--file", help="JSON file with users to seed (default: built-in demo users)")
    args = ap.parse_args()

    users = DEMO_USERS
    if args.file:
        users = json.loads(Path(args.file).read_text(encoding="utf-8"))
        if not isinstance(users, list):
            raise SystemExit("Seed file must contain a list of users")

    settings = get_settings()
    configure_logging(settings.log_level)
    services = build_services(settings)
    now = utc_now_iso()
    try:
        for seed in users:
            print(f"user/{seed['profile']['username']}")
            entry = seed_user(services, seed, now)
            if not services.registry.upsert_entry(entry):
                print(f"  ! registry entry for {entry.username} not written")
        print(f"OK: seeded {len(users)} users")
    finally:
        services.close()


if __name__ == "__main__":
    try:
        main()
    except Exception as exc:  # pragma: no cover - CLI usage
        sys.stderr.write(f"Error: {exc}\n")
        raise SystemExit(1)
