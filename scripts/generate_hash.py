#!/usr/bin/env python3
"""
scripts/generate_hash.py — Print a bcrypt hash for seeding the users table.

    python scripts/generate_hash.py             # hashes the demo password
    python scripts/generate_hash.py s3cret

Paste the output into users.password_hash.
"""
import argparse
import sys
from pathlib import Path

# Make the project root importable
sys.path.insert(0, str(Path(__file__).parent.parent))

from finreports.auth import hash_password, verify_password

DEMO_PASSWORD = "demo123"


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("password", nargs="?", default=DEMO_PASSWORD)
    args = parser.parse_args(argv)

    hashed = hash_password(args.password)
    if not verify_password(args.password, hashed):
        print("bcrypt round-trip failed", file=sys.stderr)
        return 1
    print(hashed)
    return 0


if __name__ == "__main__":
    sys.exit(main())
