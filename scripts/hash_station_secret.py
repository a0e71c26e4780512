#!/usr/bin/env python3
"""
Hash a station password for the station directory file.
"""

import argparse
import getpass
import sys
from pathlib import Path

# Add the parent directory to sys.path to import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.core.stations import DEFAULT_ITERATIONS, hash_secret


def main():
    parser = argparse.ArgumentParser(
        description="Produce a secret_hash value for STATIONS_CONFIG_PATH",
        epilog='Paste the output into the station entry: {"name": "JKIA", "secret_hash": "..."}'
    )
    parser.add_argument("--iterations", type=int, default=DEFAULT_ITERATIONS,
                        help="PBKDF2 iterations (default: %(default)s)")
    args = parser.parse_args()

    secret = getpass.getpass("Station password: ")
    if not secret:
        print("Password cannot be empty")
        return 1
    if getpass.getpass("Repeat password: ") != secret:
        print("Passwords do not match")
        return 1

    print(hash_secret(secret, iterations=args.iterations))
    return 0


if __name__ == "__main__":
    sys.exit(main())
