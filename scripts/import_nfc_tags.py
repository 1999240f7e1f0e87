#!/usr/bin/env python3
"""
Import NFC tag UIDs into the inventory.

Reads one UID per line (blank lines and lines starting with # are ignored);
a CSV whose first column holds the UID works too.

Usage:
  python scripts/import_nfc_tags.py tags.txt
  cat tags.csv | python scripts/import_nfc_tags.py -
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from nexus_cards.core.logging_config import configure_logging
from nexus_cards.db.create_tables import create_all
from nexus_cards.services.nfc_service import NfcService


def read_uids(lines) -> list[str]:
    uids = []
    for line in lines:
        value = line.strip()
        if not value or value.startswith("#"):
            continue
        uids.append(value.split(",", 1)[0].strip().strip('"'))
    return uids


def main() -> None:
    ap = argparse.ArgumentParser(description="Import NFC tag UIDs")
    ap.add_argument("source", help="File with one UID per line, or - for stdin")
    args = ap.parse_args()

    configure_logging()
    create_all()
    if args.source == "-":
        uids = read_uids(sys.stdin)
    else:
        path = Path(args.source)
        if not path.is_file():
            raise SystemExit(f"File not found: {path}")
        uids = read_uids(path.read_text(encoding="utf-8").splitlines())
    if not uids:
        raise SystemExit("No UIDs found")

    result = NfcService().import_tags(uids)
    print(f"Imported: {result['imported']}")
    print(f"Skipped:  {result['skipped']}")
    for error in result["errors"]:
        print(f"  error: {error}")


if __name__ == "__main__":
    main()
