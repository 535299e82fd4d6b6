"""
Daily admin token generator.

Usage:
    vinscent-token                 # today's token for every role
    vinscent-token developer       # one role, cross-checked with the dev server
    vinscent-token --verify        # every role, cross-checked with the dev server
    vinscent-token-interactive     # look up your role from birth date + phone
"""
import argparse
import re
import sys
from datetime import datetime, timezone

import requests

from common import config
from common.token_engine import Role, TokenEngine, today_date_string

BIRTH_RE = re.compile(r"\d{8}")
PHONE_RE = re.compile(r"\d{10,11}")
ROLE_LABELS = {
    Role.DEVELOPER: "Developer",
    Role.DESIGNER: "Designer",
    Role.MARKETING: "Marketing",
    Role.PM: "PM",
}


def build_engine() -> TokenEngine:
    return TokenEngine(config.load_token_config())


def print_usage_hint():
    print("How to use:")
    print("  1. Copy the token for your role")
    print("  2. Open the admin page and paste it into the login form")
    print("  3. The token is valid until midnight UTC")


def verify_with_server(token: str, url: str) -> bool:
    try:
        res = requests.get(url, params={"token": token}, timeout=5)
        res.raise_for_status()
        data = res.json()
    except (requests.RequestException, ValueError) as e:
        print(f"Server check failed: {e}")
        print("Is the development gateway running with APP_ENV=development?")
        return False

    debug = data.get("debug", {})
    result = data.get("result", {})
    print("Server debug info:")
    print(f"  server date: {debug.get('currentDate')}")
    print(f"  result:      {'valid' if result.get('valid') else 'invalid'}")
    if result.get("valid"):
        print(f"  role:        {result.get('role')}")
    print("Server tokens:")
    for role, expected in debug.get("expectedTokens", {}).items():
        mark = "OK" if expected == token else "--"
        print(f"  [{mark}] {role}: {expected}")
    return bool(result.get("valid"))


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="vinscent-token",
                                     description="Print today's admin token(s).")
    parser.add_argument("role", nargs="?", help="one of: " + ", ".join(r.value for r in Role))
    parser.add_argument("--verify", action="store_true",
                        help="cross-check against the development debug endpoint")
    parser.add_argument("--url", default=config.DEBUG_TOKEN_URL, help="debug endpoint URL")
    args = parser.parse_args(argv)

    if args.role is not None and args.role not in {r.value for r in Role}:
        print(f"Invalid role: {args.role}", file=sys.stderr)
        print(f"Available roles: {', '.join(r.value for r in Role)}", file=sys.stderr)
        return 1

    try:
        engine = build_engine()
        date = today_date_string()
        print(f"Today (UTC): {date}")
        print()

        if args.role is not None:
            token = engine.derive_token(date, args.role)
            print(f"{args.role.upper()} token:")
            print(f"  {token}")
            print()
            if verify_with_server(token, args.url):
                print("Token accepted by the server.")
            else:
                print("Token not accepted by the server.")
            return 0

        tokens = engine.expected_tokens(date)
        for role, token in tokens.items():
            print(f"{role.upper()}: {token}")
            if args.verify and not token.startswith("Error:"):
                verify_with_server(token, args.url)
                print()
        print()
        print_usage_hint()
        return 0
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def wait_for_exit(prompt=input):
    try:
        prompt("\nPress Enter to exit...")
    except EOFError:
        pass


def interactive_main(prompt=input, now: datetime = None) -> int:
    print("=" * 60)
    print("        Admin token generator (interactive)")
    print("=" * 60)
    now = now or datetime.now(timezone.utc)
    date = today_date_string(now)
    print(f"Today (UTC): {date}")
    print()

    try:
        engine = build_engine()
        birth = prompt("Birth date (YYYYMMDD): ").strip()
        if not BIRTH_RE.fullmatch(birth):
            print("Error: birth date must be 8 digits (e.g. 20020317).")
            wait_for_exit(prompt)
            return 1

        phone = prompt("Phone number: ").strip()
        if not PHONE_RE.fullmatch(phone):
            print("Error: phone number must be 10-11 digits (e.g. 01092034239).")
            wait_for_exit(prompt)
            return 1

        role = engine.find_role_by_identity(birth, phone)
        if role is None:
            print()
            print("Not a registered team member. Please contact an administrator.")
            wait_for_exit(prompt)
            return 0

        token = engine.derive_token(date, role)
        print()
        print(f"Role: {ROLE_LABELS[role]} ({role.value})")
        print("-" * 60)
        print(f"   {token}")
        print("-" * 60)
        print("This token is valid today only; do not share it.")
        wait_for_exit(prompt)
        return 0
    except EOFError:
        print("\nInput closed.")
        return 1
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def run():
    sys.exit(main())


def run_interactive():
    sys.exit(interactive_main())


if __name__ == "__main__":
    run()
