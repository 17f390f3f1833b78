"""Tests for the Team module."""
from conftest import audit_events


def _member(client, name, **extra):
    body = {"name": name, "title": "Registered Nurse", "bio": f"{name} bio"}
    body.update(extra)
    r = client.post("/api/team", json=body)
    assert r.status_code == 201, r.json
    return r.json


def test_team_requires_team_manage(client, editor_client, admin_client):
    body = {"name": "Dr. Lee", "title": "Geriatrician", "bio": "Twenty years of practice."}
    assert client.post("/api/team", json=body).status_code == 401
    assert editor_client.post("/api/team", json=body).status_code == 403
    r = admin_client.post("/api/team", json=body)
    assert r.status_code == 201
    assert r.json["isVisible"] is True
    assert r.json["displayOrder"] == 0


def test_display_order_defaults_to_next(admin_client):
    _member(admin_client, "A", displayOrder=5)
    b = _member(admin_client, "B")
    assert b["displayOrder"] == 6


def test_validation_lists_every_problem(admin_client):
    r = admin_client.post(
        "/api/team",
        json={
            "name": "",
            "bio": "x",
            "socialLinks": [{"platform": "LinkedIn", "url": "not a url"}],
            "contactInfo": {"email": "nope"},
        },
    )
    assert r.status_code == 400
    fields = {d["field"] for d in r.json["details"]}
    assert fields == {"name", "title", "socialLinks[0].url", "contactInfo.email"}


def test_hidden_members_need_include_hidden(admin_client, client):
    _member(admin_client, "Visible", displayOrder=1)
    _member(admin_client, "Hidden", displayOrder=0, isVisible=False)

    r = client.get("/api/team")
    assert [m["name"] for m in r.json["items"]] == ["Visible"]
    assert r.json["meta"]["total"] == 1

    r = client.get("/api/team?includeHidden=true")
    assert [m["name"] for m in r.json["items"]] == ["Hidden", "Visible"]


def test_search_covers_specializations(admin_client):
    _member(admin_client, "Pat", specializations="Dementia care, wound care")
    _member(admin_client, "Sam")
    r = admin_client.get("/api/team?search=dementia")
    assert [m["name"] for m in r.json["items"]] == ["Pat"]


def test_social_links_and_contact_are_replaced(app, admin_client):
    m = _member(
        admin_client,
        "Jo",
        socialLinks=[{"platform": "LinkedIn", "url": "https://linkedin.com/in/jo"}],
        contactInfo={"email": "jo@example.com", "phone": "555-0100"},
    )
    assert m["contactInfo"] == {"email": "jo@example.com", "phone": "555-0100"}

    r = admin_client.put(
        f"/api/team/{m['id']}",
        json={
            "socialLinks": [
                {"platform": "X", "url": "https://x.com/jo"},
                {"platform": "Site", "url": "https://jo.example.com"},
            ],
            "contactInfo": {"phone": "555-0199"},
        },
    )
    assert r.status_code == 200
    assert [link["platform"] for link in r.json["socialLinks"]] == ["X", "Site"]
    assert r.json["contactInfo"] == {"email": None, "phone": "555-0199"}

    r = admin_client.put(f"/api/team/{m['id']}", json={"title": "Charge Nurse"})
    assert r.json["title"] == "Charge Nurse"
    assert len(r.json["socialLinks"]) == 2

    r = admin_client.put(f"/api/team/{m['id']}", json={"socialLinks": [], "contactInfo": None})
    assert r.json["socialLinks"] == []
    assert r.json["contactInfo"] is None

    actions = [e["action"] for e in audit_events(app, entity_type="TeamMember")]
    assert actions == ["CREATE", "UPDATE", "UPDATE", "UPDATE"]


def test_delete_member(admin_client):
    m = _member(admin_client, "Gone", socialLinks=[{"platform": "X", "url": "https://x.com/g"}])
    r = admin_client.delete(f"/api/team/{m['id']}")
    assert r.status_code == 200
    assert r.json["count"] == 1
    assert admin_client.get(f"/api/team/{m['id']}").status_code == 404
    assert admin_client.delete(f"/api/team/{m['id']}").status_code == 404
