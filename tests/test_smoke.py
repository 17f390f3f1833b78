from conftest import audit_events, login


def test_health_ok(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json["ok"] is True


def test_login_me_and_logout(app, client):
    r = client.post("/auth/login", json={"email": "editor@example.com", "password": "pw"})
    assert r.status_code == 200
    assert r.json["user"]["email"] == "editor@example.com"
    assert r.json["user"]["roles"] == ["editor"]
    assert r.json["csrf_token"]

    r = client.get("/auth/me")
    assert r.status_code == 200
    assert r.json["user"]["name"] == "Eddie Editor"

    r = client.post("/auth/logout")
    assert r.status_code == 200
    r = client.get("/auth/me")
    assert r.status_code == 401

    actions = [e["action"] for e in audit_events(app, entity_type="User")]
    assert actions == ["LOGIN", "LOGOUT"]


def test_login_with_form_data(client):
    r = client.post("/auth/login", data={"email": "admin@example.com", "password": "pw"})
    assert r.status_code == 200
    assert "admin" in r.json["user"]["roles"]


def test_bad_credentials_are_rejected_and_audited(app, client):
    r = client.post("/auth/login", json={"email": "admin@example.com", "password": "nope"})
    assert r.status_code == 401
    assert r.json == {"error": "Invalid credentials"}
    events = audit_events(app, action="LOGIN_FAILED")
    assert len(events) == 1
    assert events[0]["entity_id"] == "admin@example.com"


def test_login_is_rate_limited(client):
    for _ in range(5):
        assert client.post("/auth/login", json={"email": "admin@example.com", "password": "bad"}).status_code == 401
    r = client.post("/auth/login", json={"email": "admin@example.com", "password": "pw"})
    assert r.status_code == 429


def test_anonymous_mutation_is_unauthorized(client):
    r = client.post("/api/posts", json={"title": "Hello", "content": "Body", "status": "DRAFT"})
    assert r.status_code == 401
    assert r.json == {"error": "Unauthorized"}


def test_mutation_without_csrf_token_is_rejected(app):
    c = login(app, "admin@example.com")
    c.environ_base.pop("HTTP_X_CSRF_TOKEN")
    r = c.post("/api/categories", json={"name": "Nutrition"})
    assert r.status_code == 400
    assert "CSRF" in r.json["error"]


def test_unknown_route_is_json_404(client):
    r = client.get("/api/nope")
    assert r.status_code == 404
    assert r.json == {"error": "Not Found"}
