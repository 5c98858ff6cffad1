# app.py
import os
from pathlib import Path

from flask import Flask, jsonify
from flask_cors import CORS

from skyinvest.config import Config
from skyinvest.errors import register_error_handlers
from skyinvest.extensions import db, init_extensions  # single shared SQLAlchemy/Migrate/JWT instances

# ===== Blueprints =====
from skyinvest.routes.admin_routes import admin_bp
from skyinvest.routes.entrepreneur_routes import entrepreneur_bp
from skyinvest.routes.expenses_routes import expenses_bp
from skyinvest.routes.investor_routes import investor_bp
from skyinvest.routes.invoices_routes import invoices_bp
from skyinvest.routes.notifications_routes import notifications_bp
from skyinvest.routes.payroll_routes import employees_bp, payroll_bp
from skyinvest.routes.shares_routes import shares_bp
from skyinvest.scheduler import start_scheduler


# =========================
#   Database bootstrap
# =========================
def _auto_db_bootstrap(app: Flask) -> None:
    """
    1) Run Alembic upgrade if migrations/ exists
    2) Otherwise create tables
    """
    migrations_dir = Path(__file__).resolve().parent / "migrations"
    with app.app_context():
        if migrations_dir.is_dir():
            from flask_migrate import upgrade
            upgrade(directory=str(migrations_dir))
        else:
            db.create_all()  # first-time dev


def _seed_default_admin(app: Flask) -> None:
    """Create the default admin user exactly once (no-op if present)."""
    from werkzeug.security import generate_password_hash

    from skyinvest.models import User

    admin_email = app.config.get("DEFAULT_ADMIN_EMAIL")
    admin_password = app.config.get("DEFAULT_ADMIN_PASSWORD")
    if not admin_email or not admin_password:
        return

    with app.app_context():
        if User.query.filter_by(email=admin_email).first():
            return  # already seeded
        db.session.add(User(
            name="Administrator",
            email=admin_email,
            password=generate_password_hash(admin_password),
            user_type="admin",
            status="Active",
        ))
        db.session.commit()
        app.logger.info("Default admin created: %s", admin_email)


def _normalize_sqlite_uri(app: Flask) -> None:
    """
    If SQLALCHEMY_DATABASE_URI points at a *relative* SQLite file, rewrite it to an
    absolute path under app.instance_path.
    """
    uri = app.config.get("SQLALCHEMY_DATABASE_URI", "")
    if uri.startswith("sqlite:///"):
        rel = uri[len("sqlite:///"):]
        if rel and rel != ":memory:" and not os.path.isabs(rel):
            os.makedirs(app.instance_path, exist_ok=True)
            abs_path = os.path.join(app.instance_path, rel)
            app.config["SQLALCHEMY_DATABASE_URI"] = f"sqlite:///{abs_path}"
            app.logger.info("Normalized SQLite path -> %s", app.config["SQLALCHEMY_DATABASE_URI"])


# ---------- app factory ----------
def create_app(config_class=Config) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_class)

    # Normalize SQLite path (avoid multiple relative files) BEFORE init db
    _normalize_sqlite_uri(app)

    init_extensions(app)

    # ✅ Import models BEFORE DB bootstrap so metadata is loaded
    import skyinvest.models  # noqa: F401

    _auto_db_bootstrap(app)
    _seed_default_admin(app)

    # CORS
    CORS(
        app,
        supports_credentials=True,
        resources={r"/*": {"origins": app.config.get("CORS_ALLOWED_ORIGINS", [])}},
        allow_headers=["Content-Type", "Authorization"],
        methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    )

    register_error_handlers(app)

    # Health check
    @app.get("/health")
    def health():
        return jsonify(status="ok")

    # Register API blueprints (stable prefixes)
    app.register_blueprint(shares_bp, url_prefix="/shares")
    app.register_blueprint(investor_bp, url_prefix="/investor")
    app.register_blueprint(entrepreneur_bp, url_prefix="/entrepreneur")
    app.register_blueprint(admin_bp, url_prefix="/admin")
    app.register_blueprint(expenses_bp, url_prefix="/expenses")
    app.register_blueprint(invoices_bp, url_prefix="/invoices")
    app.register_blueprint(employees_bp, url_prefix="/employees")
    app.register_blueprint(payroll_bp, url_prefix="/payroll")
    app.register_blueprint(notifications_bp, url_prefix="/notifications")

    if app.config.get("SCHEDULER_ENABLED"):
        start_scheduler(app, dev_mode=False)

    return app


if __name__ == "__main__":
    app = create_app()
    # the reloader would start a second scheduler in the child process
    app.run(host="0.0.0.0", port=int(os.getenv("PORT", "5000")), debug=True, use_reloader=False)
