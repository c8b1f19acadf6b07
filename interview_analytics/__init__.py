import os

from flask import Flask, jsonify

from .extensions import db, migrate, rq
from .services.errors import InvalidInput, NotFound, StoreUnavailable


def register_error_handlers(app):
    @app.errorhandler(InvalidInput)
    def invalid_input(e):
        return jsonify({"error": str(e)}), 400

    @app.errorhandler(NotFound)
    def not_found(e):
        return jsonify({"error": str(e)}), 404

    @app.errorhandler(StoreUnavailable)
    def store_unavailable(e):
        app.logger.warning('Store unavailable while serving request: %s', e)
        return jsonify({"error": "analytics store unavailable", "detail": str(e)}), 503


def create_app(config_object='config.Config'):
    """App factory. Tables are created on startup unless SKIP_CREATE_ALL is
    set (alembic owns the schema then)."""
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.logger.setLevel(app.config.get('LOG_LEVEL', 'INFO'))

    db.init_app(app)
    migrate.init_app(app, db)
    rq.init_app(app)

    from . import models  # noqa: F401
    from .api.interviews import bp as interviews_bp
    from .api.analytics import bp as analytics_bp
    app.register_blueprint(interviews_bp)
    app.register_blueprint(analytics_bp)
    register_error_handlers(app)

    if not os.getenv("SKIP_CREATE_ALL"):
        with app.app_context():
            db.create_all()

    @app.get('/healthz')
    def healthz():
        return jsonify({"status": "ok", "rq": rq.queue is not None})

    return app
