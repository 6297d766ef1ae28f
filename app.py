# app.py
from typing import Any, Dict, Optional

from flask import Flask, render_template, current_app, request
from config import Config
from models import catalog  # catalog.PROGRAM_CATALOG

# DB / Login
from services.db import init_db, create_all, get_session
from services.models import Member
from services.storage import duration_label, entry_action, file_kind
from flask_login import LoginManager

login_manager = LoginManager()
login_manager.login_view = "auth.login"  # type: ignore[assignment]
login_manager.login_message = "Please sign in to access member content."


def create_app(overrides: Optional[Dict[str, Any]] = None):
    """
    Application factory；`flask --app app run` 會自動找到這個函式。
    overrides：測試時覆寫設定（例如記憶體 sqlite）。
    """
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    # ---- 初始化資料庫（本機狀態）----
    db_uri = app.config.get("SQLALCHEMY_DATABASE_URI", "sqlite:///portal.db")
    init_db(db_uri, echo=app.config.get("SQLALCHEMY_ECHO", False))
    create_all()

    # ---- 初始化 Flask-Login ----
    login_manager.init_app(app)

    @login_manager.user_loader
    def load_user(user_id: str):
        if not user_id:
            return None
        with get_session() as s:
            return s.get(Member, user_id)

    # ---- 範本用的檔案類型 filter ----
    app.jinja_env.filters["file_kind"] = file_kind
    app.jinja_env.filters["entry_action"] = entry_action
    app.jinja_env.filters["duration_label"] = duration_label

    # ---- 藍圖註冊 ----
    from blueprints.auth import bp as auth_bp
    from blueprints.programs import bp as programs_bp
    from blueprints.resources import bp as resources_bp
    from blueprints.account import bp as account_bp
    from blueprints.api import bp as api_bp

    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(programs_bp, url_prefix="/programs")
    app.register_blueprint(resources_bp)
    app.register_blueprint(account_bp, url_prefix="/account")
    app.register_blueprint(api_bp, url_prefix="/api")

    # ---- 頁面與健康檢查 ----
    @app.get("/")
    def index():
        return render_template("index.html", programs=catalog.list_programs())

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.get("/debug/keys")
    def debug_keys():
        return {
            "has_SECRET_KEY": bool(app.config.get("SECRET_KEY")),
            "has_SUPABASE_URL": bool(app.config.get("SUPABASE_URL")),
            "has_SUPABASE_ANON_KEY": bool(app.config.get("SUPABASE_ANON_KEY")),
            "bucket": app.config.get("SUPABASE_BUCKET"),
            "database_url": app.config.get("SQLALCHEMY_DATABASE_URI", "N/A"),
        }

    @app.errorhandler(404)
    def not_found(e):
        if request.path.startswith("/api/"):
            return {"ok": False, "error": "not found"}, 404
        current_app.logger.info(f"[404] {request.path}")
        return render_template("not_found.html"), 404

    return app
