"""Tests for the Posts module."""
from conftest import audit_events


def _category(client, name):
    r = client.post("/api/categories", json={"name": name})
    assert r.status_code == 201
    return r.json["id"]


def _tag(client, name):
    r = client.post("/api/tags", json={"name": name})
    assert r.status_code == 201
    return r.json["id"]


def _post(client, title, **extra):
    body = {"title": title, "content": f"{title} body", "status": "DRAFT"}
    body.update(extra)
    r = client.post("/api/posts", json=body)
    assert r.status_code == 201, r.json
    return r.json


def test_create_post_derives_slug_and_audits(app, editor_client):
    r = editor_client.post(
        "/api/posts",
        json={"title": "Tips for Healthy Aging", "content": "Stay active.", "status": "DRAFT"},
    )
    assert r.status_code == 201
    body = r.json
    assert body["slug"] == "tips-for-healthy-aging"
    assert body["status"] == "DRAFT"
    assert body["author"]["email"] == "editor@example.com"
    assert body["categories"] == []
    assert body["tags"] == []

    events = audit_events(app, entity_type="Post")
    assert len(events) == 1
    assert events[0]["action"] == "CREATE"
    assert events[0]["entity_id"] == str(body["id"])
    assert events[0]["actor"] == "editor@example.com"


def test_duplicate_slug_is_rejected(app, editor_client):
    _post(editor_client, "Tips for Healthy Aging")
    r = editor_client.post(
        "/api/posts",
        json={"title": "Tips for healthy aging!", "content": "Again", "status": "DRAFT"},
    )
    assert r.status_code == 400
    assert r.json["error"] == "A post with this slug already exists"
    assert len(audit_events(app, entity_type="Post")) == 1


def test_validation_reports_every_field(editor_client):
    r = editor_client.post("/api/posts", json={"status": "ARCHIVED", "publishedAt": "yesterday"})
    assert r.status_code == 400
    assert r.json["error"] == "Validation failed"
    fields = {d["field"] for d in r.json["details"]}
    assert {"title", "content", "status", "publishedAt"} <= fields


def test_unknown_category_id_is_a_validation_error(editor_client):
    r = editor_client.post(
        "/api/posts",
        json={"title": "Orphan", "content": "x", "status": "DRAFT", "categories": [999]},
    )
    assert r.status_code == 400
    assert r.json["details"][0]["field"] == "categories"


def test_published_without_date_gets_one(editor_client):
    body = _post(editor_client, "Flu Season", status="PUBLISHED")
    assert body["publishedAt"] is not None


def test_terms_are_replaced_only_when_sent(editor_client):
    c1 = _category(editor_client, "Nutrition")
    c2 = _category(editor_client, "Mobility")
    t1 = _tag(editor_client, "seniors")
    post = _post(editor_client, "Eating Well", categories=[c1, c2], tags=[t1])
    assert sorted(c["id"] for c in post["categories"]) == sorted([c1, c2])

    # omitted: untouched
    r = editor_client.put(f"/api/posts/{post['id']}", json={"excerpt": "Short"})
    assert r.status_code == 200
    assert sorted(c["id"] for c in r.json["categories"]) == sorted([c1, c2])
    assert [t["id"] for t in r.json["tags"]] == [t1]

    # sent: full replacement
    r = editor_client.put(f"/api/posts/{post['id']}", json={"categories": [c2, c2]})
    assert r.status_code == 200
    assert [c["id"] for c in r.json["categories"]] == [c2]
    assert [t["id"] for t in r.json["tags"]] == [t1]

    r = editor_client.put(f"/api/posts/{post['id']}", json={"categories": [], "tags": []})
    assert r.status_code == 200
    assert r.json["categories"] == []
    assert r.json["tags"] == []

    r = editor_client.get(f"/api/posts/{post['id']}")
    assert r.json["categories"] == []


def test_title_change_regenerates_slug(editor_client):
    post = _post(editor_client, "Old Title")
    r = editor_client.put(f"/api/posts/{post['id']}", json={"title": "New Shiny Title"})
    assert r.status_code == 200
    assert r.json["slug"] == "new-shiny-title"

    r = editor_client.put(f"/api/posts/{post['id']}", json={"title": "Another", "slug": "Custom Slug"})
    assert r.json["slug"] == "custom-slug"


def test_update_audit_uses_original_title(app, editor_client):
    post = _post(editor_client, "Before")
    editor_client.put(f"/api/posts/{post['id']}", json={"title": "After"})
    events = audit_events(app, entity_type="Post", action="UPDATE")
    assert events[0]["details"] == 'Updated post "Before"'


def test_only_author_or_manager_can_change_post(app, editor_client, viewer_client, admin_client):
    post = _post(editor_client, "Mine")

    r = viewer_client.put(f"/api/posts/{post['id']}", json={"title": "Hijacked"})
    assert r.status_code == 403
    r = viewer_client.delete(f"/api/posts/{post['id']}")
    assert r.status_code == 403

    r = admin_client.put(f"/api/posts/{post['id']}", json={"status": "PENDING_REVIEW"})
    assert r.status_code == 200
    assert r.json["status"] == "PENDING_REVIEW"

    r = editor_client.delete(f"/api/posts/{post['id']}")
    assert r.status_code == 200
    assert r.json["count"] == 1
    assert editor_client.get(f"/api/posts/{post['id']}").status_code == 404

    actions = [e["action"] for e in audit_events(app, entity_type="Post")]
    assert actions == ["CREATE", "UPDATE", "DELETE"]


def test_missing_post_is_404(editor_client):
    assert editor_client.get("/api/posts/4242").status_code == 404
    assert editor_client.put("/api/posts/4242", json={"title": "x"}).status_code == 404


def test_list_envelope_and_pagination(editor_client):
    for i in range(12):
        _post(editor_client, f"Post {i}")

    r = editor_client.get("/api/posts")
    assert r.status_code == 200
    meta = r.json["meta"]
    assert meta == {"total": 12, "page": 1, "limit": 10, "totalPages": 2}
    assert len(r.json["items"]) == 10
    # newest first
    assert r.json["items"][0]["title"] == "Post 11"

    r = editor_client.get("/api/posts?page=2&limit=10")
    assert len(r.json["items"]) == 2

    r = editor_client.get("/api/posts?page=abc&limit=-5")
    assert r.json["meta"]["page"] == 1
    assert r.json["meta"]["limit"] == 10

    r = editor_client.get("/api/posts?limit=1000")
    assert r.json["meta"]["limit"] == 100


def test_list_filters(editor_client, admin_client):
    cat = _category(editor_client, "Heart Health")
    tag = _tag(editor_client, "cardio")
    _post(editor_client, "Walking for Heart Health", status="PUBLISHED", categories=[cat], tags=[tag])
    _post(editor_client, "Sleep Tips")
    _post(admin_client, "Hydration", content="Drink water for heart health")

    r = editor_client.get("/api/posts?status=PUBLISHED")
    assert [p["title"] for p in r.json["items"]] == ["Walking for Heart Health"]

    r = editor_client.get("/api/posts?search=HEART")
    assert {p["title"] for p in r.json["items"]} == {"Walking for Heart Health", "Hydration"}

    r = editor_client.get(f"/api/posts?categoryId={cat}")
    assert r.json["meta"]["total"] == 1
    r = editor_client.get(f"/api/posts?tagId={tag}")
    assert r.json["meta"]["total"] == 1

    admin_id = admin_client.get("/auth/me").json["user"]["id"]
    r = editor_client.get(f"/api/posts?authorId={admin_id}")
    assert [p["title"] for p in r.json["items"]] == ["Hydration"]

    r = editor_client.get("/api/posts?status=ARCHIVED")
    assert r.status_code == 400


def test_pages_reconstruct_full_set(editor_client):
    created = {_post(editor_client, f"Paged {i}")["id"] for i in range(7)}
    _post(editor_client, "Other", status="PUBLISHED")

    first = editor_client.get("/api/posts?status=DRAFT&limit=3").json
    assert first["meta"]["total"] == 7
    assert first["meta"]["totalPages"] == 3

    seen = []
    for page in range(1, first["meta"]["totalPages"] + 1):
        r = editor_client.get(f"/api/posts?status=DRAFT&limit=3&page={page}")
        seen.extend(p["id"] for p in r.json["items"])
    assert len(seen) == len(set(seen))
    assert set(seen) == created


def test_page_beyond_total_is_empty(editor_client):
    _post(editor_client, "Only One")
    _post(editor_client, "And Two")

    r = editor_client.get("/api/posts?page=5")
    assert r.status_code == 200
    assert r.json["items"] == []
    assert r.json["meta"]["total"] == 2

    r = editor_client.get("/api/posts?page=99999999999999999999")
    assert r.status_code == 200
    assert r.json["items"] == []
    assert r.json["meta"]["total"] == 2


def test_out_of_range_ids_are_rejected(editor_client):
    r = editor_client.get("/api/posts?categoryId=²")
    assert r.status_code == 400
    assert r.json["details"][0]["field"] == "categoryId"

    r = editor_client.get(f"/api/posts?tagId={10**20}")
    assert r.status_code == 400

    r = editor_client.post(
        "/api/posts",
        json={"title": "Huge", "content": "x", "status": "DRAFT", "categories": [10**20]},
    )
    assert r.status_code == 400
    assert r.json["details"][0]["field"] == "categories"

    assert editor_client.get(f"/api/posts/{10**20}").status_code == 404


def test_audit_failure_rolls_back_mutation(app, editor_client, monkeypatch):
    from app.cms.models import AuditEvent
    from app.cms.modules.posts import service

    def _failing_record_event(s, **kwargs):
        s.add(AuditEvent(action=None))
        s.flush()

    monkeypatch.setattr(service, "record_event", _failing_record_event)
    r = editor_client.post("/api/posts", json={"title": "Never Saved", "content": "x", "status": "DRAFT"})
    assert r.status_code == 500
    assert r.json == {"error": "Internal server error"}

    r = editor_client.get("/api/posts")
    assert r.json["meta"]["total"] == 0
    assert audit_events(app, entity_type="Post") == []


def test_concurrent_duplicate_slug_is_a_conflict(app, editor_client, monkeypatch):
    from app.cms.modules.posts import service

    _post(editor_client, "Racing Title")
    # both writers passed the pre-check; the unique index decides
    monkeypatch.setattr(service, "ensure_unique_slug", lambda *args, **kwargs: None)
    r = editor_client.post("/api/posts", json={"title": "Racing Title", "content": "x", "status": "DRAFT"})
    assert r.status_code == 400
    assert r.json["error"] == "A post with this slug already exists"
    assert editor_client.get("/api/posts").json["meta"]["total"] == 1
