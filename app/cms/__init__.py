import logging
from datetime import timedelta

from flask import Flask, g, jsonify, request, session
from dotenv import load_dotenv
from werkzeug.exceptions import HTTPException

from app.cms.config import load_config
from app.cms.db import init_db, teardown_db_session
from app.cms.errors import CMSError
from app.cms.routes import IdConverter, bp as routes_bp
from app.cms.auth import bp as auth_bp, load_current_user
from app.cms.modules.posts.admin import bp as posts_bp
from app.cms.modules.taxonomy.admin import bp as taxonomy_bp
from app.cms.modules.team.admin import bp as team_bp
from app.cms.modules.media.admin import bp as media_bp

logger = logging.getLogger(__name__)


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__)
    app.config.from_mapping(load_config())
    app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(hours=8)
    app.config["SESSION_REFRESH_EACH_REQUEST"] = True

    from app.cms.security import ensure_csrf_token, validate_csrf

    @app.before_request
    def _csrf_guard():
        if request.path.startswith(("/health", "/healthz")):
            return None
        session.permanent = True
        if not app.config.get("CSRF_ENABLED", True):
            return None
        if request.method in ("POST", "PUT", "PATCH", "DELETE"):
            # Login/logout pass through; anonymous calls are rejected later with 401.
            if (request.endpoint or "").startswith("auth."):
                return None
            if not session.get("user_id"):
                return None
            ensure_csrf_token()
            if not validate_csrf(request):
                return jsonify({"error": "CSRF token missing or invalid."}), 400

    # Production guardrails (fail fast with clear logs)
    env = (app.config.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        if not app.config.get("DATABASE_URL") or str(app.config["DATABASE_URL"]).strip() == "":
            raise RuntimeError("DATABASE_URL is required in production.")
        if str(app.config["DATABASE_URL"]).startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
        if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me"):
            raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")

    init_db(app)

    def _dispose_engine_on_fork() -> None:
        import os
        if hasattr(os, "register_at_fork"):
            def _after_fork_child():
                engine = app.extensions.get("sqlalchemy_engine")
                if engine:
                    engine.dispose()
                    app.logger.info("Disposed DB engine after fork (pid=%s)", os.getpid())

            os.register_at_fork(after_in_child=_after_fork_child)

    _dispose_engine_on_fork()

    if app.config.get("STORAGE_BACKEND") == "s3":
        missing_s3 = [
            key
            for key in ("S3_ENDPOINT", "S3_BUCKET", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY")
            if not app.config.get(key)
        ]
        if missing_s3:
            app.logger.error("STORAGE CONFIG ERROR: Missing required S3 env vars: %s", ", ".join(missing_s3))

    app.url_map.converters["id"] = IdConverter
    app.register_blueprint(routes_bp)
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(posts_bp, url_prefix="/api")
    app.register_blueprint(taxonomy_bp, url_prefix="/api")
    app.register_blueprint(team_bp, url_prefix="/api")
    app.register_blueprint(media_bp, url_prefix="/api")

    def _load_user_wrapper():
        if request.path.startswith(("/health", "/healthz")):
            g.current_user = None
            return None
        return load_current_user()

    app.before_request(_load_user_wrapper)
    app.teardown_appcontext(teardown_db_session)

    def _rollback_request_session() -> None:
        s = getattr(g, "db_session", None)
        if s is not None:
            s.rollback()

    @app.errorhandler(CMSError)
    def _err_cms(e: CMSError):  # type: ignore[no-redef]
        _rollback_request_session()
        if e.status_code == 403:
            missing = getattr(g, "missing_permission", None)
            app.logger.warning(
                "Forbidden: path=%s missing_permission=%s request_id=%s",
                request.path,
                missing,
                getattr(g, "request_id", None),
            )
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(HTTPException)
    def _err_http(e: HTTPException):  # type: ignore[no-redef]
        _rollback_request_session()
        if e.code == 413:
            return jsonify({"error": "File too large. Maximum size is 25MB."}), 413
        return jsonify({"error": e.name}), e.code

    @app.errorhandler(Exception)
    def _err_500(e: Exception):  # type: ignore[no-redef]
        _rollback_request_session()
        app.logger.exception("Unhandled 500 (request_id=%s)", getattr(g, "request_id", None))
        return jsonify({"error": "Internal server error"}), 500

    logger.info("create_app() complete; app ready to serve")

    return app
