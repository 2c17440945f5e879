#!/usr/bin/env python3
"""
Seed elections into the PostgreSQL election store.

Reads a JSON file shaped like:

    [{"title": "Student Council 2025", "candidates": ["Alice", "Bob"]}]

or creates a small sample set when no file is given.
"""
import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from election_services.vote_api.config import settings
from election_services.vote_api.database import PostgresElectionStore

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

SAMPLE_ELECTIONS = [
    {"title": "Student Council President", "candidates": ["Alice", "Bob", "Charlie"]},
    {"title": "Club Treasurer", "candidates": ["Dana", "Eli"]},
]


def load_elections(path: Path) -> list:
    """Load and check election definitions from a JSON file."""
    with open(path, 'r') as f:
        data = json.load(f)

    if not isinstance(data, list):
        raise ValueError("Election file must contain a JSON array")

    for entry in data:
        if not isinstance(entry, dict):
            raise ValueError(f"Election definition must be a JSON object: {entry!r}")
        names = entry.get("candidates") or []
        if not isinstance(names, list):
            raise ValueError(f"Candidates must be a JSON array: {entry!r}")
        if not entry.get("title") or not names:
            raise ValueError(f"Election needs a title and candidates: {entry!r}")
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate candidate names in '{entry['title']}'")
    return data


async def seed(dsn: str, elections: list, clear: bool):
    store = PostgresElectionStore(dsn)
    await store.initialize()
    try:
        if clear:
            for existing in await store.list_elections():
                await store.delete_election(existing["id"])
            logger.info("Existing elections removed")

        for entry in elections:
            doc = await store.create_election(entry["title"], entry["candidates"])
            print(f"  {doc['id']}  {doc['title']}  ({len(doc['candidates'])} candidates)")
    finally:
        await store.close()


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description='Seed elections into the election store'
    )
    parser.add_argument(
        'file',
        nargs='?',
        type=Path,
        help='JSON file with election definitions (default: built-in sample)'
    )
    parser.add_argument(
        '--dsn',
        default=settings.postgres_dsn,
        help='PostgreSQL connection string (default: from environment)'
    )
    parser.add_argument(
        '--clear',
        action='store_true',
        help='Delete existing elections and their votes first'
    )
    args = parser.parse_args()

    try:
        elections = load_elections(args.file) if args.file else SAMPLE_ELECTIONS
    except (OSError, ValueError) as e:
        logger.error(f"Cannot read election file: {e}")
        sys.exit(1)

    print(f"Seeding {len(elections)} election(s)...")
    asyncio.run(seed(args.dsn, elections, args.clear))
    print("Done.")


if __name__ == '__main__':
    main()
