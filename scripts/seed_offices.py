#!/usr/bin/env python3
"""
Create the voucher workflow schema and seed one account per office.

Loads settings from the packaged defaults, an optional YAML file and
VOUCHER_* environment variables, creates any missing tables, then adds
the office accounts, the BAC committee members and the BAC quorum
setting.  Safe to run repeatedly.

Usage:
    python3 scripts/seed_offices.py
    python3 scripts/seed_offices.py --config settings/production.yaml
"""

import argparse
import sys
from pathlib import Path

# ---------------------------------------------------------------------------
# Project root on sys.path
# ---------------------------------------------------------------------------
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--config", type=Path, default=None, help="YAML settings file")
    args = parser.parse_args(argv)

    from voucher_config import load_settings
    from voucher_kernel.db.engine import session_scope
    from voucher_kernel.exceptions import DependencyError
    from voucher_services.bootstrap import seed_offices, start

    try:
        settings = load_settings(args.config)
    except (OSError, ValueError) as exc:
        print(f"  ERROR: {exc}", file=sys.stderr)
        return 1

    print()
    print("  [1/2] Connecting and creating schema...")
    dispatcher = start(settings, create_schema=True)
    try:
        print("  [2/2] Seeding office accounts...")
        with session_scope() as session:
            result = seed_offices(session, settings)
    except DependencyError as exc:
        print(f"  ERROR: {exc}", file=sys.stderr)
        return 1
    finally:
        dispatcher.shutdown()

    print(f"  Created {result.created_users} account(s)")
    if result.quorum_set:
        print(f"  BAC quorum set to {settings.bac_required_approvals}")
    print()
    return 0


if __name__ == "__main__":
    sys.exit(main())
