#!/usr/bin/env python3
"""
CLI for nearby search and affordability.

Usage:
    python -m core.cli nearby <listings_json> --lat LAT --lng LNG [--radius MILES]
    python -m core.cli affordability --income AMOUNT [--mode buy]

Examples:
    # Listings within 2 miles of central London
    python -m core.cli nearby data/listings.json --lat 51.5074 --lng -0.1278 --radius 2

    # Purchase ceiling on a yearly salary
    python -m core.cli affordability --income 60000 --yearly --mode buy --credit excellent
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from utils import Config

from .affordability import (
    DEFAULT_DOWN_PAYMENT_PERCENT,
    AffordabilityEngine,
    AffordabilityMode,
    CreditTier,
    FinancialProfile,
    IncomeType,
)
from .nearby import NearbySearchService
from .proximity import Coordinate, InvalidInputError, SortOrder
from .repository import JsonListingRepository, ListingStoreError, preferences_from_record


def cmd_nearby(args) -> int:
    """Search a listings file around a coordinate and print the outcome."""
    listings_path = Path(args.listings_file)
    if not listings_path.exists():
        print(f"Error: File not found: {listings_path}", file=sys.stderr)
        return 1

    prefs = None
    if args.preferences:
        try:
            doc = json.loads(Path(args.preferences).read_text())
        except (OSError, json.JSONDecodeError) as e:
            print(f"Error: Could not read preferences: {e}", file=sys.stderr)
            return 1
        prefs = preferences_from_record(doc)

    service = NearbySearchService(JsonListingRepository(listings_path))
    outcome = service.nearby(
        origin=Coordinate(args.lat, args.lng),
        radius_miles=args.radius,
        preferences=prefs,
        limit=args.limit,
        alerts=args.alerts,
        sort=SortOrder(args.sort),
    )
    print(json.dumps(outcome.to_dict(), indent=2))
    return 0


def cmd_affordability(args) -> int:
    """Print the rent or purchase ceiling for the given finances."""
    profile = FinancialProfile(
        income=args.income,
        monthly_debt_obligations=args.debts,
        credit_tier=CreditTier.from_string(args.credit),
        down_payment_percent=args.down_payment,
        income_type=IncomeType.YEARLY if args.yearly else IncomeType.MONTHLY,
        mode=AffordabilityMode(args.mode),
    )
    result = AffordabilityEngine().calculate(profile)
    print(json.dumps(result.to_dict() if result else None, indent=2))
    return 0


def main(argv=None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Nearby Search Engine - proximity search and affordability",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python -m core.cli nearby data/listings.json --lat 51.5074 --lng -0.1278
    python -m core.cli affordability --income 5000 --mode buy

Output:
    JSON on stdout
        """,
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # Nearby command
    nearby_parser = subparsers.add_parser(
        "nearby",
        help="Rank listings from a JSON file around a location",
    )
    nearby_parser.add_argument("listings_file", help="Path to JSON listings file")
    nearby_parser.add_argument("--lat", type=float, required=True, help="Origin latitude")
    nearby_parser.add_argument("--lng", type=float, required=True, help="Origin longitude")
    nearby_parser.add_argument("--radius", type=float, default=None, help="Radius in miles")
    nearby_parser.add_argument("--preferences", help="Path to JSON preferences document")
    nearby_parser.add_argument("--limit", type=int, default=None, help="Maximum results")
    nearby_parser.add_argument(
        "--sort",
        choices=[s.value for s in SortOrder],
        default=SortOrder.SCORE.value,
        help="Result order (default: match score)",
    )
    nearby_parser.add_argument(
        "--alerts", action="store_true", help="Include proximity alerts (within 0.5 miles)"
    )
    nearby_parser.set_defaults(func=cmd_nearby)

    # Affordability command
    afford_parser = subparsers.add_parser(
        "affordability",
        help="Calculate the affordable rent or purchase price",
    )
    afford_parser.add_argument("--income", type=float, required=True, help="Gross income")
    afford_parser.add_argument(
        "--yearly", action="store_true", help="Income is yearly (default: monthly)"
    )
    afford_parser.add_argument(
        "--debts", type=float, default=0.0, help="Monthly debt obligations"
    )
    afford_parser.add_argument(
        "--credit",
        choices=[t.value for t in CreditTier],
        default=CreditTier.GOOD.value,
        help="Credit tier",
    )
    afford_parser.add_argument(
        "--down-payment",
        type=int,
        default=DEFAULT_DOWN_PAYMENT_PERCENT,
        help="Down payment percent (5-50)",
    )
    afford_parser.add_argument(
        "--mode",
        choices=[m.value for m in AffordabilityMode],
        default=AffordabilityMode.RENT.value,
    )
    afford_parser.set_defaults(func=cmd_affordability)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=Config.load().log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        return args.func(args)
    except InvalidInputError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except ListingStoreError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
