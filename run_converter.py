#!/usr/bin/env python3
"""
CLI script to run the converter.

Reads HTML fragments from files and converts each one to blocks. Prints the
blocks as JSON (default) or as serialized block markup (--markup).

Settings come from HTML_TO_BLOCKS_* environment variables; a .env file in
the working directory is loaded first.
"""

import argparse
import json
import logging
from pathlib import Path

from dotenv import load_dotenv
load_dotenv()

from html_to_blocks.converter import HTMLToBlocksConverter
from html_to_blocks.schemas import ConverterSettings
from html_to_blocks.serializer import serialize_blocks


def main():
    parser = argparse.ArgumentParser(description="Convert HTML fragments to blocks")
    parser.add_argument("files", nargs="+", help="HTML files to process")
    parser.add_argument("--output", "-o", help="Output file")
    parser.add_argument("--markup", "-m", action="store_true", help="Print block markup instead of JSON")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    args = parser.parse_args()

    settings = ConverterSettings.from_env()
    if args.verbose:
        settings.log_level = logging.DEBUG
    converter = HTMLToBlocksConverter(settings=settings)

    results = []
    markup_parts = []

    for filepath in args.files:
        path = Path(filepath)
        print(f"Converting: {path.name}")

        try:
            html = path.read_text(encoding="utf-8", errors="replace")
            result = converter.convert(html)

            results.append({
                "file": path.name,
                "status": "success",
                "blocks": [b.model_dump() for b in result.blocks],
                "warnings": result.warnings,
                "fidelity_ratio": round(result.fidelity_ratio, 3),
            })
            markup_parts.append(serialize_blocks(result.blocks))

            fallbacks = sum(1 for b in result.blocks if b.name == "core/html")
            if fallbacks:
                print(f"  ✓ {len(result.blocks)} blocks ({fallbacks} kept as HTML)")
            else:
                print(f"  ✓ {len(result.blocks)} blocks")
            for warning in result.warnings:
                print(f"  ! {warning}")

        except Exception as e:
            results.append({
                "file": path.name,
                "status": "error",
                "error": str(e)
            })
            print(f"  ✗ Error: {e}")

    if args.markup:
        output = "\n\n".join(markup_parts)
    else:
        # ensure_ascii=False preserves unicode characters in the JSON
        output = json.dumps(results, indent=2, ensure_ascii=False)

    if args.output:
        Path(args.output).write_text(output, encoding="utf-8")
        print(f"\nSaved to: {args.output}")
    else:
        print("\n" + output)


if __name__ == "__main__":
    main()
