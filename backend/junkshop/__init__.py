# backend/junkshop/__init__.py
from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta

from flask import Flask, current_app, request

from .config import Config
from .extensions import db, migrate


@dataclass(frozen=True)
class Services:
    """Process-wide service registry. Built once in create_app, never mutated."""
    repository: object
    directory: object
    identity: object
    gate: object
    transactions: object
    images: object
    cash: object


def build_services(app: Flask) -> Services:
    from .services.access_service import AccessGate
    from .services.cash_service import CashLedger
    from .services.image_service import LocalImageStore
    from .services.session_service import SessionIdentityProvider
    from .services.tenant_service import TenantDirectory
    from .services.transaction_repository import SqlTransactionRepository
    from .services.transaction_service import TransactionLifecycleManager

    config = app.config

    repository = SqlTransactionRepository(db.session)
    directory = TenantDirectory(
        db.session,
        default_business_id=config["DEFAULT_BUSINESS_ID"],
        default_business_name=config["DEFAULT_BUSINESS_NAME"],
        bootstrap_owner_email=config["BOOTSTRAP_OWNER_EMAIL"],
        invitation_ttl=timedelta(days=config["INVITATION_TTL_DAYS"]),
    )
    identity = SessionIdentityProvider()
    gate = AccessGate(db.session, identity, directory)
    cash = CashLedger(db.session, gate)
    transactions = TransactionLifecycleManager(repository, gate, cash=cash)
    images = LocalImageStore(
        root=config["UPLOAD_FOLDER"],
        public_url=config["PUBLIC_UPLOAD_URL"],
        max_bytes=config["MAX_IMAGE_BYTES"],
        allowed_types=tuple(config["ALLOWED_IMAGE_TYPES"]),
    )

    return Services(
        repository=repository,
        directory=directory,
        identity=identity,
        gate=gate,
        transactions=transactions,
        images=images,
        cash=cash,
    )


def get_services() -> Services:
    return current_app.extensions["junkshop"]


def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    # Overrides must land before db.init_app, which builds the engine
    if test_config:
        app.config.update(test_config)

    # Relative upload folders live under the instance folder
    if not os.path.isabs(app.config["UPLOAD_FOLDER"]):
        app.config["UPLOAD_FOLDER"] = os.path.join(app.instance_path, app.config["UPLOAD_FOLDER"])

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    app.extensions["junkshop"] = build_services(app)

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.transactions import transactions_bp
    from .routes.businesses import businesses_bp, invitations_bp
    from .routes.images import images_bp
    from .routes.cash import cash_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(transactions_bp)
    app.register_blueprint(businesses_bp)
    app.register_blueprint(invitations_bp)
    app.register_blueprint(images_bp)
    app.register_blueprint(cash_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allowed_origins = {
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:4173",
            "http://127.0.0.1:4173",
        }
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
