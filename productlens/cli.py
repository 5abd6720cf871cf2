#!/usr/bin/env python3
"""CLI entry point for product page extraction."""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from .config import Settings
from .errors import ExtractionError, IncompleteResultError, UnsupportedSourceError
from .pipeline import ExtractOptions, Extractor
from .platforms import PLATFORMS

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_UNSUPPORTED = 2
EXIT_INCOMPLETE = 3


def exit_code_for(error: ExtractionError) -> int:
    if isinstance(error, UnsupportedSourceError):
        return EXIT_UNSUPPORTED
    if isinstance(error, IncompleteResultError):
        return EXIT_INCOMPLETE
    return EXIT_FAILED


def parse_variants(pairs: list[str]) -> dict[str, str]:
    """["size=M", "color=Blue"] -> {"size": "M", "color": "Blue"}"""
    variants: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip() or not value.strip():
            raise ValueError(f"Invalid variant '{pair}', expected TYPE=VALUE")
        variants[key.strip().lower()] = value.strip()
    return variants


async def run(urls: list[str], options: ExtractOptions, settings: Settings, concurrency: int) -> tuple[list, int]:
    extractor = Extractor(settings)
    try:
        if len(urls) == 1:
            try:
                record = await extractor.extract(urls[0], options)
                return [record.to_dict()], EXIT_OK
            except ExtractionError as e:
                return [e.to_dict()], exit_code_for(e)

        results = await extractor.extract_many(urls, options, concurrency=concurrency)
        code = EXIT_OK
        payload = []
        for result in results:
            if isinstance(result, ExtractionError):
                payload.append(result.to_dict())
                code = code or exit_code_for(result)
            else:
                payload.append(result.to_dict())
        return payload, code
    finally:
        await extractor.close()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Extract structured product data from e-commerce pages",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m productlens.cli https://www.amazon.in/dp/B0XXXXXXX
  python -m productlens.cli URL --pincode 560001
  python -m productlens.cli URL --no-delivery
  python -m productlens.cli URL --variant size=M --variant color=Blue
  python -m productlens.cli URL1 URL2 --concurrency 2 -o out.json
  python -m productlens.cli --list
        """,
    )
    parser.add_argument("urls", nargs="*", help="Product page URL(s)")
    parser.add_argument("--list", "-l", action="store_true", help="List supported platforms")
    parser.add_argument("--bypass-cache", action="store_true", help="Ignore cached results")
    parser.add_argument(
        "--no-delivery", dest="delivery", action="store_false", help="Skip the delivery check for the location code"
    )
    parser.add_argument("--pincode", "-p", help="Delivery location code (default: 201001)")
    parser.add_argument("--variant", action="append", default=[], metavar="TYPE=VALUE", help="Select a variant first")
    parser.add_argument("--timeout", "-t", type=float, help="Whole-pipeline timeout in seconds")
    parser.add_argument("--concurrency", "-c", type=int, default=3, help="Parallel extractions for several URLs")
    parser.add_argument("--output", "-o", type=Path, help="Write JSON to this file instead of stdout")

    args = parser.parse_args(argv)

    if args.list:
        print("Supported platforms:")
        for profile in PLATFORMS.values():
            print(f"  - {profile.name}: {', '.join(profile.domains)}")
        return EXIT_OK

    if not args.urls:
        parser.error("at least one URL is required")

    try:
        variants = parse_variants(args.variant)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILED

    settings = Settings.from_env()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    options = ExtractOptions(
        bypass_cache=args.bypass_cache,
        variants=variants,
        check_delivery=args.delivery,
        location_code=args.pincode,
        timeout=args.timeout,
    )
    payload, code = asyncio.run(run(args.urls, options, settings, args.concurrency))

    text = json.dumps(payload[0] if len(payload) == 1 else payload, ensure_ascii=False, indent=2)
    if args.output:
        args.output.write_text(text, encoding="utf-8")
        print(f"Saved JSON to {args.output}")
    else:
        print(text)
    return code


if __name__ == "__main__":
    sys.exit(main())
