#!/usr/bin/env python3
import argparse
import json
import os
import sys
from pathlib import Path

REPO_BACKEND = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_BACKEND))


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed the HomeHero catalog with demo services.")
    parser.add_argument("--db-path", type=str, default="", help="SQLite file to seed (defaults to HOMEHERO_DB_PATH).")
    args = parser.parse_args()

    if args.db_path:
        os.environ["HOMEHERO_DB_PATH"] = args.db_path

    from homehero.services.errors import ServiceStoreConflictError  # noqa: E402
    from homehero.services.service_catalog import service_catalog  # noqa: E402

    try:
        seeded, total = service_catalog.seed_samples()
    except ServiceStoreConflictError as exc:
        print(json.dumps({"seeded": 0, "message": str(exc)}))
        return 1
    print(json.dumps({"seeded": seeded, "total": total}))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
