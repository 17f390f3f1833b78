#!/usr/bin/env python3
"""Create a staff user or attach a role to an existing one (idempotent).

Usage:
  python scripts/create_user.py --email editor@example.com --name "Jo Editor" --role editor
  python scripts/create_user.py --email admin@example.com --role admin
"""

import sys
import os
import argparse
import getpass
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from werkzeug.security import generate_password_hash

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.cms.constants import ROLE_PERMISSIONS
from app.cms.models import Role, User


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--email", required=True, help="User email")
    parser.add_argument("--name", default=None, help="Display name (new users only)")
    parser.add_argument("--role", choices=sorted(ROLE_PERMISSIONS), default=None, help="Role to attach")
    args = parser.parse_args()

    db_url = (os.environ.get("DATABASE_URL") or "sqlite:///carecms.db").strip()
    engine = create_engine(db_url, future=True)
    sm = sessionmaker(bind=engine, class_=Session, autoflush=False, autocommit=False, expire_on_commit=False, future=True)
    s: Session = sm()
    try:
        email = args.email.strip().lower()
        user = s.query(User).filter(User.email == email).one_or_none()
        if not user:
            password = os.environ.get("USER_PASSWORD") or getpass.getpass(f"Password for {email}: ")
            user = User(email=email, name=args.name, password_hash=generate_password_hash(password), is_active=True)
            s.add(user)
            print(f"Created user {email}")
        if args.role:
            role = s.query(Role).filter(Role.key == args.role).one_or_none()
            if not role:
                print(f"Role {args.role!r} not found. Run python scripts/init_db.py first.")
                return
            if role in (user.roles or []):
                print(f"User already has {args.role} role: {email}")
            else:
                user.roles.append(role)
                print(f"{args.role} role attached to {email}")
        s.commit()
    finally:
        s.close()


if __name__ == "__main__":
    main()
