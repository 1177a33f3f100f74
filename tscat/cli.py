#!/usr/bin/env python3
"""
tscat - translation catalog maintenance and lookup CLI

Commands:
    update   - Merge a scanner extraction into a catalog file
    resolve  - Look up a string through a locale fallback chain
    stats    - Count catalog messages per status
    convert  - Convert a catalog between formats (TS, PO)
    formats  - List supported formats

Example workflow:
    1. scanner > extraction.json
    2. tscat update --input translations/app_pt_BR.ts --extraction extraction.json
       → Returns: merge report (new / existing / obsolete counts)
    3. [Translators work on app_pt_BR.ts]
    4. tscat resolve --catalog pt_BR=translations/app_pt_BR.ts --locale pt_BR \\
           --context Call --source New
       → Returns: display text
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from . import __version__
from .catalog import Catalog
from .config import load_config
from .extraction import load_extraction
from .format_handlers import FormatRegistry
from .lookup import LookupEngine
from .plurals import normalize_locale
from .reconciler import reconcile

logger = logging.getLogger(__name__)


def _handler_for(path: str, format_type: str = "auto"):
    if format_type and format_type != "auto":
        return FormatRegistry.get_handler(format_type)
    return FormatRegistry.detect_format(path)


def cmd_update(args) -> dict:
    """Reconcile an extraction file into a catalog."""
    handler = _handler_for(args.input, args.format)
    input_path = Path(args.input)

    if input_path.exists():
        old_catalog = handler.load(input_path)
    else:
        if not args.language:
            return {
                "status": "error",
                "error": "missing_language",
                "message": f"Catalog {args.input} does not exist and no --language was given.",
                "suggestion": f"Try: tscat update --input {args.input} --extraction {args.extraction} --language pt_BR",
            }
        logger.info("Creating new catalog %s", input_path)
        old_catalog = Catalog(language="", source_language=args.source_language)

    if args.language:
        old_catalog.language = normalize_locale(args.language)

    extraction = load_extraction(args.extraction)
    result = reconcile(old_catalog, extraction, prune=args.prune, strict=args.strict)

    output_path = Path(args.output) if args.output else input_path
    output_handler = _handler_for(str(output_path), args.format) if args.output else handler
    output_handler.save(output_path, result.catalog)

    return {
        "status": "ok" if not result.report.issues else "warning",
        "output_file": str(output_path),
        "report": result.report.to_dict(),
        "stats": result.catalog.stats(),
        "summary": result.report.summary(),
    }


def cmd_resolve(args) -> dict:
    """Resolve one message through a fallback chain."""
    if args.config:
        config = load_config(args.config)
        engine = LookupEngine.from_config(config)
        locale = args.locale or config.default_locale
        fallbacks = config.fallbacks.get(normalize_locale(locale)) if locale else None
    elif args.catalog:
        engine = LookupEngine()
        fallbacks = []
        for entry in args.catalog:
            catalog_locale, sep, path = entry.partition("=")
            if not sep:
                raise ValueError(f"--catalog expects LOCALE=PATH, got '{entry}'")
            engine.load_file(catalog_locale, path)
            fallbacks.append(normalize_locale(catalog_locale))
        locale = args.locale or fallbacks[0]
        # requested locale first, then the listed catalogs in order
        fallbacks = [normalize_locale(locale)] + [l for l in fallbacks if l != normalize_locale(locale)]
    else:
        raise ValueError("resolve needs --catalog LOCALE=PATH or --config FILE")

    if args.accept_unfinished:
        engine.accept_unfinished = True

    switched = bool(locale) and engine.set_active_locale(locale, fallbacks)

    text = engine.resolve(args.context, args.source, args.disambiguation, args.count)
    return {
        "status": "ok" if switched else "fallback",
        "text": text,
        "translated": text != args.source,
        "locale": engine.active_locale,
        "chain": engine.active_chain.locales,
    }


def cmd_stats(args) -> dict:
    """Count messages per status."""
    handler = _handler_for(args.input, args.format)
    catalog = handler.load(args.input)
    stats = catalog.stats()
    active = stats["finished"] + stats["unfinished"]
    percent = round(stats["finished"] / active * 100, 1) if active else 0.0
    return {
        "status": "ok",
        "language": catalog.language,
        "source_language": catalog.source_language,
        "stats": stats,
        "summary": f"{stats['finished']}/{active} active messages finished ({percent}%), "
                   f"{stats['obsolete']} obsolete, {stats['vanished']} vanished.",
    }


def cmd_convert(args) -> dict:
    """Convert a catalog between formats."""
    source = _handler_for(args.input, args.from_format)
    target = _handler_for(args.output, args.to_format)
    catalog = source.load(args.input)
    target.save(args.output, catalog)
    return {
        "status": "ok",
        "output_file": args.output,
        "from": source.name,
        "to": target.name,
        "summary": f"Converted {len(catalog)} messages from {source.name} to {target.name}.",
    }


def cmd_formats(args) -> dict:
    """List supported formats."""
    formats = FormatRegistry.list_formats()
    return {
        "status": "ok",
        "formats": formats,
        "summary": f"{len(formats)} formats supported: {', '.join(f['name'] for f in formats)}",
    }


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tscat",
        description="tscat - translation catalog maintenance and lookup",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Extraction file format (JSON or YAML list):
  [["Call", "New", null, [["src/call.cpp", 12]], false],
   {"context": "Call", "source_text": "%n call(s)", "disambiguation": null,
    "locations": [["src/call.cpp", 40]], "is_plural": true}]

Examples:
  # Merge fresh extraction into the Brazilian Portuguese catalog
  tscat update --input app_pt_BR.ts --extraction extraction.json

  # Start a new catalog
  tscat update --input app_de.ts --extraction extraction.json --language de

  # Drop entries that vanished in earlier runs
  tscat update --input app_pt_BR.ts --extraction extraction.json --prune

  # Look up a plural message with fallback to the base language
  tscat resolve -c pt_BR=app_pt_BR.ts -c pt=app_pt.ts --context Call --source "%n call(s)" --count 3

  # Export for a gettext-based translation platform
  tscat convert --input app_pt_BR.ts --output app_pt_BR.po
        """,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging on stderr")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")
    format_choices = ["auto"] + [f["name"] for f in FormatRegistry.list_formats()]

    # update command
    update_parser = subparsers.add_parser("update", help="Merge an extraction into a catalog")
    update_parser.add_argument("--input", "-i", required=True, help="Catalog file (created if missing)")
    update_parser.add_argument("--extraction", "-e", required=True, help="Extraction file (.json/.yaml)")
    update_parser.add_argument("--output", "-o", help="Output file (default: overwrite input)")
    update_parser.add_argument("--language", "-l", help="Target language of the catalog (e.g. pt_BR)")
    update_parser.add_argument("--source-language", default="en", help="Source language for new catalogs (default: en)")
    update_parser.add_argument("--format", "-f", default="auto", choices=format_choices, help="Catalog format (default: auto-detect)")
    update_parser.add_argument("--prune", action="store_true", help="Remove messages that already vanished")
    update_parser.add_argument("--strict", action="store_true", help="Fail on the first bad extraction record")

    # resolve command
    resolve_parser = subparsers.add_parser("resolve", help="Resolve a message through a fallback chain")
    resolve_parser.add_argument("--catalog", "-c", action="append", help="LOCALE=PATH, repeatable, in fallback order")
    resolve_parser.add_argument("--config", help="Engine configuration file (YAML)")
    resolve_parser.add_argument("--locale", "-l", help="Locale to activate")
    resolve_parser.add_argument("--context", required=True, help="Message context")
    resolve_parser.add_argument("--source", "-s", required=True, help="Source text")
    resolve_parser.add_argument("--disambiguation", "-d", help="Disambiguation comment")
    resolve_parser.add_argument("--count", "-n", type=int, help="Quantity for plural messages")
    resolve_parser.add_argument("--accept-unfinished", action="store_true", help="Serve unfinished translations")

    # stats command
    stats_parser = subparsers.add_parser("stats", help="Count catalog messages per status")
    stats_parser.add_argument("--input", "-i", required=True, help="Catalog file")
    stats_parser.add_argument("--format", "-f", default="auto", choices=format_choices, help="Catalog format (default: auto-detect)")

    # convert command
    convert_parser = subparsers.add_parser("convert", help="Convert a catalog between formats")
    convert_parser.add_argument("--input", "-i", required=True, help="Input catalog")
    convert_parser.add_argument("--output", "-o", required=True, help="Output catalog")
    convert_parser.add_argument("--from", dest="from_format", default="auto", choices=format_choices, help="Input format")
    convert_parser.add_argument("--to", dest="to_format", default="auto", choices=format_choices, help="Output format")

    # formats command
    subparsers.add_parser("formats", help="List supported formats")

    return parser


COMMANDS = {
    "update": cmd_update,
    "resolve": cmd_resolve,
    "stats": cmd_stats,
    "convert": cmd_convert,
    "formats": cmd_formats,
}


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        result = COMMANDS[args.command](args)
        print(json.dumps(result, indent=2, ensure_ascii=False))
    except Exception as e:
        print(json.dumps({
            "status": "error",
            "error": str(e),
            "error_type": type(e).__name__,
        }), file=sys.stderr)
        sys.exit(1)

    if result.get("status") == "error":
        sys.exit(1)


if __name__ == "__main__":
    main()
