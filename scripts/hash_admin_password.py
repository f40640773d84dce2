"""
Print a password hash for ADMIN_PASSWORD_HASH.

Usage:
  python scripts/hash_admin_password.py            # prompts
  python scripts/hash_admin_password.py --stdin    # reads one line from stdin
"""

import argparse
import getpass
import sys

from werkzeug.security import generate_password_hash


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--stdin", action="store_true", help="read the password from stdin")
    args = parser.parse_args()

    if args.stdin:
        password = sys.stdin.readline().rstrip("\n")
    else:
        password = getpass.getpass("Admin password: ")
        if password != getpass.getpass("Repeat: "):
            print("Passwords do not match.", file=sys.stderr)
            sys.exit(1)
    if not password:
        print("Empty password refused.", file=sys.stderr)
        sys.exit(1)
    print(generate_password_hash(password))


if __name__ == "__main__":
    main()
