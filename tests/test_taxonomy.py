"""Tests for categories and tags."""
from conftest import audit_events


def test_editor_can_create_category(app, editor_client):
    r = editor_client.post("/api/categories", json={"name": "Senior Care", "description": "Aging well"})
    assert r.status_code == 201
    assert r.json["slug"] == "senior-care"
    assert r.json["description"] == "Aging well"

    events = audit_events(app, entity_type="Category")
    assert [e["action"] for e in events] == ["CREATE"]


def test_viewer_is_forbidden_and_anonymous_unauthorized(client, viewer_client):
    r = viewer_client.post("/api/categories", json={"name": "Nope"})
    assert r.status_code == 403
    r = viewer_client.post("/api/tags", json={"name": "nope"})
    assert r.status_code == 403
    r = client.post("/api/categories", json={"name": "Nope"})
    assert r.status_code == 401


def test_duplicate_slug_conflict(editor_client):
    assert editor_client.post("/api/tags", json={"name": "Home Care"}).status_code == 201
    r = editor_client.post("/api/tags", json={"name": "x", "slug": "home-care"})
    assert r.status_code == 400
    assert r.json["error"] == "A tag with this slug already exists"


def test_name_is_required(editor_client):
    r = editor_client.post("/api/categories", json={"name": "   "})
    assert r.status_code == 400
    assert r.json["details"] == [{"field": "name", "message": "Name is required"}]


def test_list_includes_post_counts(editor_client):
    a = editor_client.post("/api/categories", json={"name": "Alpha"}).json["id"]
    editor_client.post("/api/categories", json={"name": "Beta"})
    editor_client.post("/api/posts", json={"title": "One", "content": "x", "status": "DRAFT", "categories": [a]})
    editor_client.post("/api/posts", json={"title": "Two", "content": "x", "status": "DRAFT", "categories": [a]})

    r = editor_client.get("/api/categories")
    assert r.status_code == 200
    assert r.json["meta"] == {"total": 2, "page": 1, "limit": 20, "totalPages": 1}
    assert [(c["name"], c["postCount"]) for c in r.json["items"]] == [("Alpha", 2), ("Beta", 0)]

    r = editor_client.get("/api/categories?search=bet")
    assert [c["name"] for c in r.json["items"]] == ["Beta"]

    r = editor_client.get(f"/api/categories/{a}")
    assert r.json["postCount"] == 2


def test_rename_regenerates_slug(editor_client):
    tag_id = editor_client.post("/api/tags", json={"name": "Old"}).json["id"]
    r = editor_client.put(f"/api/tags/{tag_id}", json={"name": "Brand New"})
    assert r.status_code == 200
    assert r.json["slug"] == "brand-new"

    r = editor_client.put(f"/api/tags/{tag_id}", json={"description": "only description"})
    assert r.json["slug"] == "brand-new"
    assert r.json["description"] == "only description"


def test_delete_detaches_from_posts(app, editor_client):
    cat = editor_client.post("/api/categories", json={"name": "Temporary"}).json["id"]
    post = editor_client.post(
        "/api/posts", json={"title": "Linked", "content": "x", "status": "DRAFT", "categories": [cat]}
    ).json

    r = editor_client.delete(f"/api/categories/{cat}")
    assert r.status_code == 200
    assert r.json == {"message": "Category deleted successfully", "count": 1}
    assert editor_client.get(f"/api/categories/{cat}").status_code == 404
    assert editor_client.get(f"/api/posts/{post['id']}").json["categories"] == []

    actions = [e["action"] for e in audit_events(app, entity_type="Category")]
    assert actions == ["CREATE", "DELETE"]


def test_rename_onto_taken_slug_is_a_conflict(editor_client, monkeypatch):
    from app.cms.modules.taxonomy import service

    editor_client.post("/api/categories", json={"name": "Wellness"})
    other = editor_client.post("/api/categories", json={"name": "Fitness"}).json["id"]
    monkeypatch.setattr(service, "ensure_unique_slug", lambda *args, **kwargs: None)
    r = editor_client.put(f"/api/categories/{other}", json={"name": "Wellness"})
    assert r.status_code == 400
    assert r.json["error"] == "A category with this slug already exists"
    assert editor_client.get(f"/api/categories/{other}").json["slug"] == "fitness"
