# src/circle_hub/scripts/admin_token.py
"""Print a bearer token for the admin endpoints.

Usage:
  python -m circle_hub.scripts.admin_token --subject ops --minutes 60
"""
from __future__ import annotations

import argparse

from circle_hub.core.security import create_admin_token


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Issue an admin bearer token.")
    parser.add_argument("--subject", default="admin", help="token subject (default: admin)")
    parser.add_argument(
        "--minutes",
        type=int,
        default=None,
        help="lifetime in minutes (default: ADMIN_TOKEN_EXPIRE_MINUTES)",
    )
    args = parser.parse_args(argv)
    print(create_admin_token(args.subject, args.minutes))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
