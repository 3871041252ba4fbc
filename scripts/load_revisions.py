#!/usr/bin/env python3
"""
Load revisions from a JSON file into a SQLite database.

The JSON file holds a list of objects with rev_id, rev_page, rev_timestamp
and optionally rev_parent_id. Useful for seeding a database to backfill.

Usage:
    python scripts/load_revisions.py --json data/revisions.json --db data/wiki.db
"""

import argparse
import json
from pathlib import Path
import sys

from sqlalchemy.exc import SQLAlchemyError

from parentfill.database import Revision, init_database, get_session

REQUIRED = ["rev_id", "rev_page", "rev_timestamp"]


def load(json_path: Path, db_path: Path, dry_run: bool = False) -> bool:
    """
    Insert revisions from JSON into the revision table.

    Args:
        json_path: Path to JSON file
        db_path: Path to SQLite database file
        dry_run: If True, don't write to database

    Returns:
        True if the load was committed (or dry run), False otherwise
    """
    print(f"Loading revisions from {json_path}...")
    with open(json_path, encoding="utf-8") as f:
        records = json.load(f)
    print(f"Found {len(records)} revisions")

    if dry_run:
        print("\n[DRY RUN] Would load the following revisions:")
        for rec in records[:5]:
            print(f"  rev_id={rec.get('rev_id')} page={rec.get('rev_page')} ts={rec.get('rev_timestamp')}")
        if len(records) > 5:
            print(f"  ... and {len(records) - 5} more")
        return True

    print(f"\nInitializing database at {db_path}...")
    init_database(db_path)
    session = get_session(db_path)

    loaded = 0
    skipped = 0

    for rec in records:
        if not all(rec.get(field) is not None for field in REQUIRED):
            print(f"Skipping {rec}: missing required fields")
            skipped += 1
            continue

        if session.query(Revision).filter_by(rev_id=rec["rev_id"]).first():
            print(f"Revision {rec['rev_id']} already exists, skipping")
            skipped += 1
            continue

        session.add(Revision(
            rev_id=int(rec["rev_id"]),
            rev_page=int(rec["rev_page"]),
            rev_timestamp=str(rec["rev_timestamp"]),
            rev_parent_id=rec.get("rev_parent_id"),
        ))
        loaded += 1

        if loaded % 500 == 0:
            session.flush()
            print(f"  Loaded {loaded} revisions...")

    try:
        session.commit()
        print("\nLoad complete!")
        print(f"   Loaded:  {loaded}")
        print(f"   Skipped: {skipped}")
    except SQLAlchemyError as e:
        session.rollback()
        print(f"Failed to commit: {e}")
        return False
    finally:
        session.close()

    return True


def main():
    parser = argparse.ArgumentParser(description="Load revisions from JSON into SQLite")
    parser.add_argument("--json", type=Path, required=True,
                        help="Path to JSON file with a list of revisions")
    parser.add_argument("--db", type=Path, default=Path("data/wiki.db"),
                        help="Path to SQLite database file")
    parser.add_argument("--dry-run", action="store_true",
                        help="Show what would be loaded without writing")

    args = parser.parse_args()

    if not args.json.exists():
        print(f"JSON file not found: {args.json}")
        sys.exit(1)

    if not load(args.json, args.db, dry_run=args.dry_run):
        sys.exit(1)


if __name__ == "__main__":
    main()
