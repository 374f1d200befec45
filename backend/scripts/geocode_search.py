"""Run a one-off forward geocoding query from the command line.

Usage:
    python -m scripts.geocode_search "Golden Gate" --provider nominatim --limit 5

Prints ranked candidates, one per line, or a JSON array with --json. Useful
for checking provider configuration (User-Agent, Kakao key) without starting
the API server.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional

from services.geocoding import SUPPORTED_PROVIDERS, EmptyQuery, GeocodeClient, SearchFailure
from settings import settings

LOG = logging.getLogger("geocode_search")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Forward geocode a free-text query.")
    parser.add_argument("query", help="Place name or address to look up")
    parser.add_argument(
        "--provider",
        choices=SUPPORTED_PROVIDERS,
        default=settings.GEOCODER_PROVIDER,
        help="Geocoding provider (default from GEOCODER_PROVIDER)",
    )
    parser.add_argument("--limit", type=int, default=settings.GEOCODER_RESULT_LIMIT)
    parser.add_argument("--json", action="store_true", help="Emit a JSON array")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    client = GeocodeClient(provider=args.provider, limit=args.limit)
    try:
        candidates = client.search(args.query)
    except EmptyQuery:
        LOG.warning("Query is blank; nothing to search")
        return 2
    except SearchFailure as exc:
        LOG.warning("Search failed: %s", exc)
        return 1

    if args.json:
        print(json.dumps([c.to_dict() for c in candidates], ensure_ascii=False, indent=2))
    else:
        if not candidates:
            print("No results.")
        for rank, candidate in enumerate(candidates, start=1):
            print(f"{rank}. {candidate.label}  ({candidate.lat:.5f}, {candidate.lon:.5f})  [{candidate.place_id}]")
    return 0


if __name__ == "__main__":
    sys.exit(main())
