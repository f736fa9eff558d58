#!/usr/bin/env python3
"""
Initialize (or rebuild) the configured key-value store.

Usage:
  python scripts/seed_database.py                    # seed empty buckets
  python scripts/seed_database.py --rebuild [--force] # wipe and seed again
  python scripts/seed_database.py --admin-token TOKEN # allow TOKEN to call the rebuild endpoint

The backend follows KV_BACKEND / KV_REST_API_URL / REDIS_URL; with neither
configured the in-memory backend is used and nothing outlives the process.
"""
from __future__ import annotations

import argparse

from pos_api.core.config import get_settings
from pos_api.core.logging import configure_logging
from pos_api.core.utils import isoformat, utc_now
from pos_api.db.selector import create_store
from pos_api.repositories import Repositories
from pos_api.services.bootstrap_service import (
    ADMINS_KEY,
    RebuildRefusedError,
    initialize_database,
    rebuild_database,
)


def main() -> None:
    ap = argparse.ArgumentParser(description="Seed the POS key-value store")
    ap.add_argument("--rebuild", action="store_true", help="Delete every application key before seeding")
    ap.add_argument("--force", action="store_true", help="Allow --rebuild when APP_ENV=prod")
    ap.add_argument("--retries", type=int, help="Seeding attempts (default: BOOTSTRAP_MAX_RETRIES)")
    ap.add_argument("--admin-token", help="Register a bearer token in the admins hash")
    args = ap.parse_args()

    settings = get_settings()
    configure_logging(settings.log_level)
    retries = args.retries or settings.bootstrap_max_retries

    with create_store(settings) as store:
        repos = Repositories.build(store, session_ttl_seconds=settings.session_ttl_seconds)
        if args.admin_token:
            store.hset(ADMINS_KEY, args.admin_token.strip(), isoformat(utc_now()))
            print("Admin token registered")
        if args.rebuild:
            try:
                report = rebuild_database(
                    store, repos, force=args.force, app_env=settings.app_env, max_retries=retries
                )
            except RebuildRefusedError as exc:
                raise SystemExit(exc.message)
        else:
            report = initialize_database(store, repos, max_retries=retries)

    print(f"success={report.success} attempts={report.attempts} degraded={report.degraded}")
    if not report.success:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
