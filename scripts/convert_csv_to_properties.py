#!/usr/bin/env python
"""Convert a council property-boundary CSV into the site dataset.

Usage:
    python scripts/convert_csv_to_properties.py
    python scripts/convert_csv_to_properties.py --csv Property_Boundaries.csv --json sample-data/properties.json

The existing JSON is copied to properties.backup.json (once) before it is
overwritten.
"""

import argparse
import json
import shutil
import sys
from pathlib import Path

from exemptlot.ingestion.convert import merge_properties, parse_csv

PROJECT_ROOT = Path(__file__).resolve().parent.parent


def main() -> None:
    parser = argparse.ArgumentParser(description="Merge a property-boundary CSV into the site dataset")
    parser.add_argument("--csv", type=Path, default=PROJECT_ROOT / "Property_Boundaries.csv")
    parser.add_argument("--json", type=Path, default=PROJECT_ROOT / "sample-data" / "properties.json")
    parser.add_argument("--prefix", default="ALB", help="Id prefix (default: ALB)")
    args = parser.parse_args()

    if not args.csv.exists():
        print(f"CSV not found at {args.csv}")
        sys.exit(1)
    if not args.json.exists():
        print(f"Base JSON not found at {args.json}")
        sys.exit(1)

    rows = parse_csv(args.csv.read_text(encoding="utf-8-sig"))
    if not rows:
        print("No rows parsed from CSV")
        sys.exit(1)

    base = json.loads(args.json.read_text(encoding="utf-8-sig"))
    base_props = base.get("properties") if isinstance(base, dict) else None
    records, converted = merge_properties(base_props if isinstance(base_props, list) else [], rows, args.prefix)

    backup = args.json.with_name("properties.backup.json")
    if not backup.exists():
        shutil.copyfile(args.json, backup)

    args.json.write_text(json.dumps({"properties": records}, indent=2, ensure_ascii=False), encoding="utf-8")

    print(f"Converted {converted} rows from CSV.")
    print(f"Total properties now: {len(records)}.")
    print(f"Backup saved to: {backup}")


if __name__ == "__main__":
    main()
