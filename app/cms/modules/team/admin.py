from __future__ import annotations

from flask import Blueprint, jsonify, request

from app.cms.auth import current_actor
from app.cms.db import db_session
from app.cms.modules.team.service import (
    create_team_member,
    delete_team_member,
    get_team_member,
    list_team_members,
    serialize_team_member,
    update_team_member,
)

bp = Blueprint("team", __name__)


@bp.get("/team")
def team_list():
    s = db_session()
    page = list_team_members(s, request.args)
    return jsonify(page.envelope(serialize_team_member))


@bp.post("/team")
def team_create():
    s = db_session()
    member = create_team_member(s, request.get_json(silent=True), current_actor())
    s.commit()
    return jsonify(serialize_team_member(member)), 201


@bp.get("/team/<id:member_id>")
def team_detail(member_id: int):
    s = db_session()
    return jsonify(serialize_team_member(get_team_member(s, member_id)))


@bp.put("/team/<id:member_id>")
def team_update(member_id: int):
    s = db_session()
    member = update_team_member(s, member_id, request.get_json(silent=True), current_actor())
    s.commit()
    return jsonify(serialize_team_member(member))


@bp.delete("/team/<id:member_id>")
def team_delete(member_id: int):
    s = db_session()
    delete_team_member(s, member_id, current_actor())
    s.commit()
    return jsonify({"message": "Team member deleted successfully", "count": 1})
