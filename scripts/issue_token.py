#!/usr/bin/env python3
"""
Issue a development access token and store it for the other scripts.

Tokens are normally issued by the identity service; this signs one with the
local JWT secret so the API can be exercised by hand.

Usage:
    python scripts/issue_token.py --user-id <UUID> --role host
    python scripts/issue_token.py --user-id <UUID> --role admin --minutes 120
"""

import argparse
from datetime import timedelta
from pathlib import Path
from uuid import UUID

from akwanda.core.security import ROLES, create_access_token

TOKEN_FILE = Path(__file__).parent.parent / ".token"


def issue(user_id: UUID, role: str, minutes: int) -> str:
    """Sign a token for ``user_id`` with ``role``."""
    return create_access_token(
        {"sub": str(user_id), "role": role},
        expires_delta=timedelta(minutes=minutes),
    )


def main():
    parser = argparse.ArgumentParser(description="Issue a development access token")
    parser.add_argument("--user-id", required=True, type=UUID, help="User UUID")
    parser.add_argument("--role", default="guest", choices=ROLES, help="Caller role")
    parser.add_argument("--minutes", type=int, default=60, help="Token lifetime")
    args = parser.parse_args()

    token = issue(args.user_id, args.role, args.minutes)
    TOKEN_FILE.write_text(token)

    print(f"Token for {args.user_id} ({args.role}) written to {TOKEN_FILE}")
    print(f"Token: {token}")


if __name__ == "__main__":
    main()
