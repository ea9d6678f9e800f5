#!/usr/bin/env python3
"""
SQLAuth -- test username/password logins against configured SQL sources.

Usage:
  python main.py sources
  python main.py login example-sql alice
  python main.py login example-sql alice --json
  echo 'hunter2' | python main.py login example-sql alice --password-stdin
  python main.py hash-password

Environment variables:
  AUTHSOURCES_FILE   Path to the authsources JSON file (default: authsources.json)
  LOG_LEVEL          DEBUG, INFO, WARNING, ERROR (default: INFO)

Exit codes:
  0  login succeeded / command completed
  1  wrong username or password
  2  configuration, connection, or query error
"""

import argparse
import getpass
import json
import sys
from typing import Optional

from core.config import configure_logging, get_settings
from sqlauth.errors import AuthenticationFailed, SQLAuthError
from sqlauth.passwords import hash_password
from sqlauth.sources import load_authsources

EXIT_OK = 0
EXIT_WRONG_CREDENTIALS = 1
EXIT_INTERNAL = 2


def _read_password(from_stdin: bool, prompt: str = "Password: ") -> str:
    """Read a password without echoing it, or one line from stdin for scripts."""
    if from_stdin:
        return sys.stdin.readline().rstrip("\r\n")
    return getpass.getpass(prompt)


def _print_attributes(attributes: dict[str, list[str]]) -> None:
    if not attributes:
        print("  (no attributes)")
        return
    width = max(len(name) for name in attributes)
    for name, values in attributes.items():
        print(f"  {name.ljust(width)}  {', '.join(values)}")


def cmd_sources(args: argparse.Namespace) -> int:
    sources = load_authsources(args.authsources)
    if not sources:
        print("  No SQL authentication sources configured.")
        return EXIT_OK
    for auth_id, source in sources.items():
        mode = "password_verify" if source.use_password_verify else "legacy"
        print(f"  {auth_id}  ({mode})")
    return EXIT_OK


def cmd_login(args: argparse.Namespace) -> int:
    sources = load_authsources(args.authsources)
    source = sources.get(args.source)
    if source is None:
        print(f"  [!] No SQL authentication source named '{args.source}'.", file=sys.stderr)
        return EXIT_INTERNAL

    password = _read_password(args.password_stdin)
    try:
        attributes = source.login(args.username, password)
    except AuthenticationFailed as exc:
        print(f"  [!] {exc}", file=sys.stderr)
        return EXIT_WRONG_CREDENTIALS

    if args.json:
        print(json.dumps(attributes, indent=2))
    else:
        print(f"\nLogin OK via {args.source} as {args.username}\n")
        _print_attributes(attributes)
    return EXIT_OK


def cmd_hash_password(args: argparse.Namespace) -> int:
    password = _read_password(args.password_stdin)
    if not args.password_stdin:
        confirm = getpass.getpass("Repeat password: ")
        if confirm != password:
            print("  [!] Passwords do not match.", file=sys.stderr)
            return EXIT_INTERNAL
    print(hash_password(password))
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sqlauth",
        description="Test username/password logins against SQL authentication sources.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py sources
  python main.py login example-sql alice
  python main.py login example-sql alice --json
  AUTHSOURCES_FILE=/etc/idp/authsources.json python main.py login example-sql alice
  python main.py hash-password
        """,
    )
    parser.add_argument(
        "--authsources",
        metavar="PATH",
        default=None,
        help="Path to the authsources JSON file (default: $AUTHSOURCES_FILE or authsources.json)",
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    p_sources = sub.add_parser("sources", help="List configured SQL authentication sources")
    p_sources.set_defaults(func=cmd_sources)

    p_login = sub.add_parser("login", help="Attempt a login and print the returned attributes")
    p_login.add_argument("source", metavar="SOURCE", help="Authentication source id")
    p_login.add_argument("username", metavar="USERNAME", help="Username to log in as")
    p_login.add_argument("--json", action="store_true", help="Print attributes as JSON")
    p_login.add_argument(
        "--password-stdin",
        action="store_true",
        help="Read the password from the first line of stdin instead of prompting",
    )
    p_login.set_defaults(func=cmd_login)

    p_hash = sub.add_parser("hash-password", help="Print a bcrypt hash for the password column")
    p_hash.add_argument(
        "--password-stdin",
        action="store_true",
        help="Read the password from the first line of stdin instead of prompting",
    )
    p_hash.set_defaults(func=cmd_hash_password)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not getattr(args, "func", None):
        parser.print_help()
        return EXIT_OK

    settings = get_settings()
    configure_logging(settings)
    if args.authsources is None:
        args.authsources = settings.authsources_file

    try:
        return args.func(args)
    except SQLAuthError as exc:
        print(f"  [!] {exc}", file=sys.stderr)
        return EXIT_INTERNAL


if __name__ == "__main__":
    sys.exit(main())
