#!/usr/bin/env python3
"""
Dev helper: post a test form submission to a running formrelay server.

Builds an inquiry or review form body, sets the Origin header to the
configured SITE so the origin guard lets it through, and POSTs it as
application/x-www-form-urlencoded.

Usage
-----
# Inquiry form against localhost:8080
python scripts/send_test_submission.py

# Review form
python scripts/send_test_submission.py --kind review --name Jane --stars 4

# Fill in the honeypot to watch the bot check fire
python scripts/send_test_submission.py --hp "i am a bot"

# Pretend to be another site (expect 403)
python scripts/send_test_submission.py --origin https://evil.example

Environment / .env
------------------
SITE        Allowed site; used for the Origin header unless --origin is given.
FORM_KIND   Default for --kind.
PORT        Default port for --url.
"""

import argparse
import os
import sys
import textwrap

import httpx
from dotenv import load_dotenv


def _site_origin() -> str:
    site = os.getenv("SITE", "").strip()
    if not site:
        return ""
    return site.rstrip("/") if "://" in site else f"https://{site}"


def _build_inquiry_form(args: argparse.Namespace) -> dict:
    form = {"email": args.email, "message": args.message}
    if args.hp is not None:
        form["hp"] = args.hp
    return form


def _build_review_form(args: argparse.Namespace) -> dict:
    form = {
        "name": args.name,
        "email": args.email,
        "stars": args.stars,
        "review": args.message,
    }
    if args.hp is not None:
        form["hp"] = args.hp
    return form


_FORM_BUILDERS = {
    "inquiry": _build_inquiry_form,
    "review": _build_review_form,
}


def main() -> int:
    load_dotenv()

    parser = argparse.ArgumentParser(
        prog="send_test_submission.py",
        description="Post a test form submission to a formrelay server.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            Examples:
              python scripts/send_test_submission.py
              python scripts/send_test_submission.py --kind review --stars 5
              python scripts/send_test_submission.py --email bad
        """),
    )
    parser.add_argument(
        "--url",
        default=f"http://localhost:{os.getenv('PORT', '8080')}/",
        help="Server URL (default: http://localhost:$PORT/)",
    )
    parser.add_argument(
        "--kind",
        default=os.getenv("FORM_KIND", "inquiry").lower(),
        choices=list(_FORM_BUILDERS),
        help="Form to submit (default: FORM_KIND or inquiry)",
    )
    parser.add_argument("--origin", default=None, help="Origin header (default: SITE)")
    parser.add_argument("--email", default="tester@example.com")
    parser.add_argument("--message", default="Hello from send_test_submission.py")
    parser.add_argument("--name", default="Test User")
    parser.add_argument("--stars", default="5")
    parser.add_argument(
        "--hp",
        default="",
        help='Honeypot value (default: ""). Pass --no-hp to omit the field.',
    )
    parser.add_argument("--no-hp", dest="hp", action="store_const", const=None)
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the form fields without sending them.",
    )

    args = parser.parse_args()

    origin = args.origin or _site_origin()
    if not origin:
        print(
            "ERROR: No origin to send.\n"
            "Set SITE in your environment or .env file, or pass --origin.",
            file=sys.stderr,
        )
        return 1

    form = _FORM_BUILDERS[args.kind](args)

    print(f"Endpoint: {args.url}")
    print(f"Origin  : {origin}")
    print(f"Form    : {args.kind}")
    for key, value in form.items():
        print(f"  {key} = {value!r}")

    if args.dry_run:
        return 0

    try:
        response = httpx.post(args.url, data=form, headers={"Origin": origin}, timeout=60)
    except httpx.ConnectError:
        print(
            f"\nERROR: Could not connect to {args.url}\n"
            "Is the server running? Start it with:\n"
            "  formrelay",
            file=sys.stderr,
        )
        return 1

    symbol = "OK" if response.status_code == 200 else "FAIL"
    print(f"\n[{symbol}] HTTP {response.status_code}")
    print(response.text)
    return 0 if response.status_code == 200 else 1


if __name__ == "__main__":
    sys.exit(main())
