import pytest
from werkzeug.security import generate_password_hash

from app.cms import create_app
from app.cms import auth as auth_module
from app.cms.constants import ROLE_ADMIN, ROLE_EDITOR
from app.cms.db import session_scope
from app.cms.models import AuditEvent, Base, User
from app.cms.rbac import seed_roles


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    monkeypatch.setenv("STORAGE_ROOT", str(tmp_path / "storage"))
    for k in ("S3_ENDPOINT", "S3_REGION", "S3_BUCKET", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY", "MEDIA_BASE_URL", "MAX_PAGE_LIMIT", "CSRF_ENABLED"):
        monkeypatch.delenv(k, raising=False)

    app = create_app()
    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)

    with session_scope(app) as s:
        roles = seed_roles(s)
        admin = User(email="admin@example.com", name="Ada Admin", password_hash=generate_password_hash("pw"), is_active=True)
        admin.roles.append(roles[ROLE_ADMIN])
        editor = User(email="editor@example.com", name="Eddie Editor", password_hash=generate_password_hash("pw"), is_active=True)
        editor.roles.append(roles[ROLE_EDITOR])
        viewer = User(email="viewer@example.com", name="Vic Viewer", password_hash=generate_password_hash("pw"), is_active=True)
        s.add_all([admin, editor, viewer])

    return app


@pytest.fixture(autouse=True)
def _reset_login_rate_limit():
    auth_module._login_attempts.clear()
    yield
    auth_module._login_attempts.clear()


@pytest.fixture()
def client(app):
    return app.test_client()


def login(app, email, password="pw"):
    """Fresh test client logged in as `email`, sending the CSRF header on every request."""
    c = app.test_client()
    r = c.post("/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.json
    c.environ_base["HTTP_X_CSRF_TOKEN"] = r.json["csrf_token"]
    return c


@pytest.fixture()
def admin_client(app):
    return login(app, "admin@example.com")


@pytest.fixture()
def editor_client(app):
    return login(app, "editor@example.com")


@pytest.fixture()
def viewer_client(app):
    return login(app, "viewer@example.com")


def audit_events(app, **filters):
    with session_scope(app) as s:
        q = s.query(AuditEvent)
        for key, value in filters.items():
            q = q.filter(getattr(AuditEvent, key) == value)
        return [
            {"action": e.action, "entity_type": e.entity_type, "entity_id": e.entity_id, "details": e.details, "actor": e.actor_user_email}
            for e in q.order_by(AuditEvent.id.asc()).all()
        ]
