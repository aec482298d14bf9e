#!/usr/bin/env python3
"""
Rebuild the registry (users.json on the registry branch) from the user branches.

Use it when the showcase counts or names in the registry drifted from the
per-user documents, e.g. after registry writes lost concurrency races.

Usage:
  python scripts/rebuild_registry.py [--dry-run]
"""
from __future__ import annotations

import argparse
import sys

from branchstore.core.config import get_settings
from branchstore.core.log import configure_logging
from branchstore.services.factory import build_services


def main() -> None:
    ap = argparse.ArgumentParser(description="Rebuild users.json from user/* branches")
    ap.add_argument("--dry-run", action="store_true", help="Only print the differences")
    args = ap.parse_args()

    settings = get_settings()
    configure_logging(settings.log_level)
    services = build_services(settings)
    try:
        before = {u.username: u for u in services.registry.get_registry().users}
        if args.dry_run:
            entries = services.registry.derive_entries()
        else:
            rebuilt = services.registry.rebuild()
            if rebuilt is None:
                raise SystemExit("Registry write rejected; run again")
            entries = rebuilt.users
        for entry in entries:
            old = before.pop(entry.username, None)
            if old is None:
                print(f"  + {entry.username} ({entry.showcase_count} showcases)")
            elif old.showcase_count != entry.showcase_count or old.name != entry.name:
                print(f"  ~ {entry.username}: {old.showcase_count} -> {entry.showcase_count} showcases")
        for username in sorted(before):
            print(f"  - {username} (no profile found)")
        if args.dry_run:
            print(f"Dry run: {len(entries)} users, registry not written")
        else:
            print(f"OK: registry rebuilt with {len(entries)} users")
    finally:
        services.close()


if __name__ == "__main__":
    try:
        main()
    except Exception as exc:  # pragma: no cover - CLI usage
        sys.stderr.write(f"Error: {exc}\n")
        raise SystemExit(1)
