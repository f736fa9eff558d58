#!/usr/bin/env python3
"""
Issue an API key for the public /api/v1 endpoints.

Usage:
  python scripts/create_api_key.py --business BUSINESS_ID --name "Shop sync" [--permission write] [--days 90]
"""
from __future__ import annotations

import argparse

from pos_api.core.config import get_settings
from pos_api.core.logging import configure_logging
from pos_api.db.selector import create_store
from pos_api.repositories import Repositories
from pos_api.services.api_key_service import ApiKeyService


def main() -> None:
    ap = argparse.ArgumentParser(description="Create an API key")
    ap.add_argument("--business", required=True, help="Business id the key acts for")
    ap.add_argument("--name", required=True, help="Label shown in the admin UI")
    ap.add_argument(
        "--permission",
        action="append",
        dest="permissions",
        help="Permission to grant (repeatable; default: read)",
    )
    ap.add_argument("--days", type=int, help="Expire after this many days")
    args = ap.parse_args()

    settings = get_settings()
    configure_logging(settings.log_level)

    with create_store(settings) as store:
        repos = Repositories.build(store)
        if not repos.businesses.get_by_id(args.business):
            raise SystemExit(f"Business '{args.business}' does not exist")
        record = ApiKeyService(repos.api_keys).issue(args.name, args.business, args.permissions, args.days)

    if not record:
        raise SystemExit("Could not create the API key")
    print(f"id={record['id']}")
    print(f"key={record['key']}")
    print(f"permissions={','.join(record['permissions'])}")
    if record.get("expiresAt"):
        print(f"expiresAt={record['expiresAt']}")


if __name__ == "__main__":
    main()
