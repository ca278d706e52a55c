#!/usr/bin/env python3
"""
Auto-Expand CLI - Promote frequent unrecognized terms

Runs one auto-expansion batch over every eligible unrecognized term (or the
given ids) and prints what was promoted and what was skipped.

Usage:
    termbank-auto-expand
    termbank-auto-expand --ids 12 15 --min-frequency 20
"""

import argparse
import asyncio
import sys

from dotenv import load_dotenv

from termbank.lib.console import Colors, Console
from termbank.services.expansion_engine import build_engine


def main(argv=None):
    load_dotenv()

    parser = argparse.ArgumentParser(description="Promote eligible unrecognized terms to standard terms")
    parser.add_argument('--ids', nargs='+', help='Only these unrecognized-term ids')
    parser.add_argument('--min-frequency', type=int, help='Override VOCAB_MIN_FREQUENCY for this run')
    args = parser.parse_args(argv)

    Console.section("Vocabulary Auto-Expansion")

    engine = build_engine()
    result = asyncio.run(engine.auto_expand_eligible(args.ids, args.min_frequency))

    Console.key_value("Batch", result.batch_id)
    Console.findings(
        "✓ Promoted",
        [f"{p['term']} → {p['standardTerm']} ({p['occurrenceCount']}次, {p['cleanedCount']} records)"
         for p in result.promoted],
        Colors.OKGREEN,
    )
    Console.findings(
        "Skipped",
        [f"{s['term']} [{s['status']}] {s['reason']}" for s in result.skipped],
        Colors.WARNING,
    )
    if not result.promoted and not result.skipped:
        Console.info("No eligible terms")
    return 0


if __name__ == '__main__':
    sys.exit(main())
