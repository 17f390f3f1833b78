import sys
from pathlib import Path
import os

from werkzeug.security import generate_password_hash
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from contextlib import contextmanager

# Ensure repo root is on sys.path when running as a script (Windows-friendly).
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.cms.constants import ROLE_ADMIN
from app.cms.models import User
from app.cms.rbac import seed_roles


@contextmanager
def _session_scope(database_url: str):
    engine = create_engine(database_url, future=True)
    sm = sessionmaker(bind=engine, class_=Session, autoflush=False, autocommit=False, expire_on_commit=False, future=True)
    s: Session = sm()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()


def seed_only(*, database_url: str | None = None) -> None:
    """
    Seed permissions/roles/admin user in an idempotent way.
    Does NOT overwrite an existing admin user's password.
    """
    admin_email = (os.environ.get("ADMIN_EMAIL") or "admin@carecms.local").strip().lower()
    admin_password = os.environ.get("ADMIN_PASSWORD") or "change-me"
    admin_name = (os.environ.get("ADMIN_NAME") or "Administrator").strip()

    db_url = (database_url or os.environ.get("DATABASE_URL") or "sqlite:///carecms.db").strip()

    # Direct engine/session so this can run in release without building the Flask app.
    with _session_scope(db_url) as s:
        roles = seed_roles(s)
        role_admin = roles[ROLE_ADMIN]

        user = s.query(User).filter(User.email == admin_email).one_or_none()
        if not user:
            user = User(
                email=admin_email,
                name=admin_name,
                password_hash=generate_password_hash(admin_password),
                is_active=True,
            )
            s.add(user)
        if role_admin not in user.roles:
            user.roles.append(role_admin)

    print("Initialized database (seed_only).")
    print(f"Admin email: {admin_email}")
    print("Admin password: (from ADMIN_PASSWORD)")


def main() -> None:
    seed_only(database_url=None)


if __name__ == "__main__":
    main()
