from flask import Blueprint
from werkzeug.routing import IntegerConverter

from app.cms.validation import MAX_INT

bp = Blueprint("routes", __name__)


class IdConverter(IntegerConverter):
    """`<id:name>`: positive integer that fits the INTEGER primary keys; anything else is a 404."""

    def __init__(self, map, *args, **kwargs):
        kwargs.setdefault("min", 1)
        kwargs.setdefault("max", MAX_INT)
        super().__init__(map, *args, **kwargs)


@bp.get("/health")
def health():
    """Health check endpoint. Returns JSON."""
    return {"ok": True}


@bp.get("/healthz")
def healthz():
    """
    Fast health check for k8s/DO probes. No DB access, minimal overhead.
    """
    return "ok", 200
