import argparse
import logging
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from allocation import compute_results, fmt_currency, fmt_percent
from roster import RosterError, export_payouts, load_roster

logger = logging.getLogger(__name__)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description='Compute tip payouts for a roster workbook')
    parser.add_argument('roster', help="workbook with 'staff' and 'helpers' sheets")
    parser.add_argument('total', type=float, help='tip pot to distribute')
    parser.add_argument('-o', '--output', help='write the payout workbook here')
    args = parser.parse_args(argv)

    logging.basicConfig(level=os.getenv('LOG_LEVEL', 'INFO'))

    try:
        staff, helpers = load_roster(args.roster)
    except RosterError as e:
        print(f"ERROR: {e}")
        return 1
    logger.info('loaded %d staff and %d helpers from %s', len(staff), len(helpers), args.roster)

    results = compute_results(args.total, staff, helpers)
    print(f"Split: {fmt_percent(results.applied_staff_pct)} / {fmt_percent(results.applied_helper_pct)}")
    print(f"Staff pot: {fmt_currency(results.staff_pot)}  Helper pot: {fmt_currency(results.helper_pot)}")
    for label, rows in (('Staff', results.staff_rows), ('Helpers', results.helper_rows)):
        print(f"\n--- {label}")
        for r in rows:
            print(f"{r.name or '—':<24}{fmt_currency(r.amount):>14}")
    print(f"\n{results.explanation}")

    if args.output:
        out = export_payouts(args.output, results, staff, helpers)
        print(f"\nwrote {out}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
