#!/usr/bin/env python3
"""
Integrity Check CLI - Validate vocabulary integrity

Checks for:
- Blank, duplicate and over-long terms
- Terms that are also a synonym of another term
- Unknown categories
- Ledger entries with no live term (audit drift)
- Incomplete analysis-record backfills

Usage:
    termbank-check-integrity
    termbank-check-integrity --repair
"""

import argparse
import sys

from dotenv import load_dotenv

from termbank.lib.console import Console
from termbank.services.expansion_engine import build_engine
from termbank.services.integrity import print_integrity_report


def main(argv=None):
    load_dotenv()

    parser = argparse.ArgumentParser(
        description="Check vocabulary integrity and detect drift between stores",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Check everything
  termbank-check-integrity

  # Re-run incomplete backfills, then re-check
  termbank-check-integrity --repair
        """
    )
    parser.add_argument('--repair', action='store_true',
                        help='Re-run backfill for ledger records whose backfill never completed')
    args = parser.parse_args(argv)

    Console.section("Vocabulary Integrity Check")

    try:
        engine = build_engine()
    except Exception as e:
        Console.error(f"✗ Cannot open term store: {e}")
        Console.warning("  Check POSTGRES_* settings or use TERM_STORE_BACKEND=memory")
        return 1

    report = engine.validate_integrity()
    print_integrity_report(report)

    pending = report.statistics.get("unfinishedBackfills", [])
    if args.repair and pending:
        Console.warning(f"\n🔧 Re-running backfill for {len(pending)} record(s)...")
        for record_id in pending:
            record = engine.rerun_backfill(record_id)
            state = "complete" if record.historical_data_cleaned else "still incomplete"
            Console.key_value(f"  #{record_id} {record.term}", f"{record.cleaned_count} cleaned, {state}")

        Console.info("\nRe-validating integrity...")
        report = engine.validate_integrity()
        print_integrity_report(report)

    return 0 if report.ok else 1


if __name__ == '__main__':
    sys.exit(main())
