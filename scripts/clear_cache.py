#!/usr/bin/env python3
"""Clear Firestore cache entries, optionally by key prefix.

Usage:
  python scripts/clear_cache.py
  python scripts/clear_cache.py --pattern ai-analysis --apply
  python scripts/clear_cache.py --pattern student-0FTYzgjgllP6rZZBmXil --apply
"""

import argparse

from tutor_portal import runtime
from tutor_portal.repositories import drive_cache_repo
from tutor_portal.services import cache_service


def main() -> int:
    parser = argparse.ArgumentParser(description='Clear the Firestore-backed Drive cache.')
    parser.add_argument('--pattern', default=None, help='Only clear keys starting with this prefix')
    parser.add_argument(
        '--apply',
        action='store_true',
        help='Apply changes. Without this flag, the script only reports what would be removed.',
    )
    args = parser.parse_args()

    if runtime.db is None:
        print(f"Firestore unavailable: {runtime.firebase_init_error}")
        return 1

    if not args.apply:
        matching = [
            doc.id for doc in drive_cache_repo.stream_entries(runtime.db)
            if args.pattern is None or str(doc.id).startswith(args.pattern)
        ]
        print(f"[DRY-RUN] {len(matching)} cache entries match pattern={args.pattern!r}")
        print(f"Stats: {cache_service.get_cache_stats(runtime.db)}")
        print('No changes were written. Re-run with --apply to persist.')
        return 0

    result = cache_service.invalidate_cache(runtime.db, args.pattern)
    print(f"[APPLY] removed={result['cacheEntriesRemoved']} analyses_reset={result['analysesReset']}")
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
