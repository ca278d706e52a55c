#!/usr/bin/env python3
"""
Import CLI - Seed approved standard terms from a JSON file

The file holds a list of objects:
    [{"term": "追逐", "category": "scenario", "synonyms": ["追击"],
      "filmTypes": ["动作片"], "termType": "core"}]

Usage:
    termbank-import-terms seed.json
    termbank-import-terms seed.json --reviewer alice
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from dotenv import load_dotenv

from termbank.lib.console import Colors, Console
from termbank.services.expansion_engine import build_engine


def main(argv=None):
    load_dotenv()

    parser = argparse.ArgumentParser(description="Import standard terms from a JSON file")
    parser.add_argument('file', type=Path, help='JSON list of terms')
    parser.add_argument('--reviewer', default=None, help='Recorded as the approving reviewer')
    args = parser.parse_args(argv)

    Console.section("Vocabulary Import")

    try:
        items = json.loads(args.file.read_text(encoding='utf-8'))
    except (OSError, json.JSONDecodeError) as e:
        Console.error(f"✗ Cannot read {args.file}: {e}")
        return 1
    if not isinstance(items, list):
        Console.error("✗ Expected a JSON list of term objects")
        return 1

    engine = build_engine()
    results = asyncio.run(engine.import_terms(items, reviewer=args.reviewer))

    imported = [r for r in results if r["success"]]
    failed = [r for r in results if not r["success"]]
    Console.key_value("Imported", len(imported), value_color=Colors.OKGREEN)
    Console.findings("✗ Failed", [f"{r['term']}: {r['error']}" for r in failed], Colors.FAIL)
    return 1 if failed else 0


if __name__ == '__main__':
    sys.exit(main())
