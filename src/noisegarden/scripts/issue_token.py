# src/noisegarden/scripts/issue_token.py
"""Create a user if needed and print a bearer token for it.

Used by operators to bootstrap the first admin:

    python -m noisegarden.scripts.issue_token alice --role admin
"""

from __future__ import annotations

import argparse
from collections.abc import Sequence

from sqlalchemy import select

from noisegarden.db.session import SessionLocal
from noisegarden.models import User
from noisegarden.models.user import ROLE_USER, ROLES
from noisegarden.services.restrictions import RestrictionService


def issue(username: str, role: str | None = None) -> str:
    db = SessionLocal()
    try:
        user = db.scalars(select(User).where(User.username == username)).first()
        if user is None:
            user = User(username=username, role=role or ROLE_USER)
            db.add(user)
        elif role is not None:
            user.role = role
        db.commit()
        db.refresh(user)
        return RestrictionService.issue_access_token(db, user)
    finally:
        db.close()


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Issue a bearer token for a user")
    parser.add_argument("username")
    parser.add_argument("--role", choices=ROLES, default=None)
    args = parser.parse_args(argv)
    print(issue(args.username, args.role))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
