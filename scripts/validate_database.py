"""
Audit live data invariants from CLI.

Prints a JSON report and exits 1 when any check fails.
"""

from __future__ import annotations

import argparse
import json

from app.services.integrity_service import IntegrityService
from db.session import session_scope


def main() -> int:
    parser = argparse.ArgumentParser(description="Validate dealer portal data invariants.")
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Also exit non-zero when any check only warns.",
    )
    args = parser.parse_args()

    with session_scope() as db:
        report = IntegrityService().run(db)

    print(json.dumps(report.to_dict(), indent=2))
    if not report.passed:
        return 1
    if args.strict and report.warnings:
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
