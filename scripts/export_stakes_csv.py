#!/usr/bin/env python3
"""Export the owner's stakes from a ledger snapshot as CSV."""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from bnote_labs import analytics
from bnote_labs import config as cfg
from bnote_labs import ledger


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--snapshot",
        type=Path,
        default=cfg.SNAPSHOT_PATH,
        help="Ledger snapshot JSON (default: $BNOTE_SNAPSHOT_PATH or data/snapshot.json).",
    )
    parser.add_argument(
        "--out",
        type=Path,
        default=cfg.OUT_DIR / "bnote-stakes.csv",
        help="Output CSV path; use '-' for stdout (default: out/bnote-stakes.csv).",
    )
    parser.add_argument("--now", type=int, help="Override the current unix time (seconds).")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    now = args.now if args.now is not None else int(time.time())
    client = ledger.SnapshotLedgerClient.from_path(args.snapshot)
    resolved, stakes = ledger.load_snapshot(client, client.owner)
    csv_text = analytics.stakes_csv(stakes, resolved.params, now)
    if str(args.out) == "-":
        sys.stdout.write(csv_text)
        return
    args.out.parent.mkdir(parents=True, exist_ok=True)
    args.out.write_text(csv_text, encoding="utf-8")
    print(f"[export] Wrote {len(stakes)} stake(s) to {args.out}")


if __name__ == "__main__":
    main()
