"""
rateshop CLI

Usage:
    # Print an example request
    rateshop sample > request.json

    # Quote a shipment across all configured carriers
    rateshop quote request.json

    # Machine-readable output
    rateshop quote request.json --json

Environment:
    UPS_CLIENT_ID, UPS_CLIENT_SECRET, UPS_ACCOUNT_NUMBER - required
    UPS_USE_SANDBOX, UPS_BASE_URL, UPS_RATING_API_VERSION,
    HTTP_TIMEOUT, TRANSACTION_SOURCE, LOG_LEVEL - optional
"""
import argparse
import asyncio
import dataclasses
import json
import logging
import sys
from decimal import Decimal
from enum import Enum
from typing import Any, List, Optional

from rateshop import create_rate_shopping_service
from rateshop.core.config import LOG_LEVELS, Settings, load_settings
from rateshop.core.exceptions import CarrierError
from rateshop.modules.shipping.carriers.base import RateResponse
from rateshop.schemas.shipping import parse_rate_request

logger = logging.getLogger(__name__)

SAMPLE_REQUEST = {
    "origin": {
        "name": "Fulfillment Center",
        "address_lines": ["1234 Tech Drive"],
        "city": "San Francisco",
        "state_code": "CA",
        "postal_code": "94105",
        "country_code": "US",
    },
    "destination": {
        "name": "Customer Name",
        "address_lines": ["5678 Oak Street"],
        "city": "New York",
        "state_code": "NY",
        "postal_code": "10001",
        "country_code": "US",
        "is_residential": True,
    },
    "packages": [
        {
            "dimensions": {"length": 12, "width": 8, "height": 6, "unit": "IN"},
            "weight": {"value": 5.5, "unit": "LBS"},
            "packaging_type": "CUSTOM",
        }
    ],
}


def _to_jsonable(value: Any) -> Any:
    if dataclasses.is_dataclass(value):
        return {f.name: _to_jsonable(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, CarrierError):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(v) for v in value]
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    return value


def format_quotes(response: RateResponse) -> str:
    """Render quotes as a fixed-width table."""
    lines = [
        f"{'Carrier':<8} {'Service':<30} {'Total':>12} {'Days':>5}  Guaranteed",
        "-" * 70,
    ]
    for quote in response.quotes:
        total = f"{quote.total_charges.amount} {quote.total_charges.currency}"
        days = str(quote.transit_days) if quote.transit_days is not None else "-"
        lines.append(
            f"{quote.carrier.value:<8} {quote.service_name:<30} {total:>12} {days:>5}  "
            f"{'yes' if quote.guaranteed else 'no'}"
        )
    lines.append(f"\n{len(response.quotes)} quotes from {', '.join(c.value for c in response.carriers)}")
    for error in response.partial_errors:
        lines.append(f"  ! {error.carrier}: {error.code.value} - {error.message}")
    return "\n".join(lines)


async def _quote(request_path: str, settings: Settings) -> RateResponse:
    with open(request_path, "r", encoding="utf-8") as f:
        data = json.load(f)

    request = parse_rate_request(data)
    service = create_rate_shopping_service(settings)
    try:
        return await service.get_quotes(request)
    finally:
        await service.registry.aclose()


def cmd_quote(args) -> int:
    try:
        settings = load_settings()
        if not args.log_level:
            logging.getLogger().setLevel(settings.LOG_LEVEL)
        response = asyncio.run(_quote(args.request, settings))
    except CarrierError as e:
        logger.error(f"Quote failed: {e.code.value} - {e.message}")
        print(json.dumps(e.to_dict(), indent=2), file=sys.stderr)
        return 1
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        print(f"Error: cannot read request file {args.request}: {e}", file=sys.stderr)
        return 2

    if args.json:
        print(json.dumps(_to_jsonable(response), indent=2))
    else:
        print(format_quotes(response))
    return 0


def cmd_sample(args) -> int:
    print(json.dumps(SAMPLE_REQUEST, indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rateshop",
        description="Carrier-agnostic shipping rate shopping",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s sample > request.json        # Write an example request
  %(prog)s quote request.json           # Quote across all carriers
  %(prog)s quote request.json --json    # JSON output
        """,
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        help="Override LOG_LEVEL",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    quote_parser = subparsers.add_parser("quote", help="Get rate quotes for a request file")
    quote_parser.add_argument("request", help="Path to a JSON rate request")
    quote_parser.add_argument("--json", action="store_true", help="Print JSON instead of a table")
    quote_parser.set_defaults(func=cmd_quote)

    sample_parser = subparsers.add_parser("sample", help="Print an example rate request")
    sample_parser.set_defaults(func=cmd_sample)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=args.log_level or "INFO",
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not getattr(args, "func", None):
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
