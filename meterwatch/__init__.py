"""
Main Flask application factory.
"""
import logging

from flask import Flask, jsonify, session

from meterwatch.config import Config
from meterwatch.database import build_engine, init_db, make_session_factory
from meterwatch.errors import (
    AuthenticationError,
    MalformedInputError,
    StaleSessionError,
    TransientIOError,
)
from meterwatch.services import OcrClient, Services, SqlPersistenceAdapter, SyncEngine

logger = logging.getLogger(__name__)


def create_app(config_class=Config):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_class)

    # Register blueprints
    from meterwatch.routes.main import main_bp
    from meterwatch.routes.internal import internal_bp
    from meterwatch.routes.auth import auth_bp
    from meterwatch.routes.dashboard import dashboard_bp
    from meterwatch.routes.readings import readings_bp
    from meterwatch.routes.admin import admin_bp

    app.register_blueprint(main_bp)
    app.register_blueprint(internal_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(readings_bp)
    app.register_blueprint(admin_bp)

    _register_error_handlers(app)

    # Initialize persistence + sync engine
    engine = build_engine(app.config.get('DATABASE_URL'))
    adapter = SqlPersistenceAdapter(make_session_factory(engine))
    sync_engine = SyncEngine(adapter, interval=app.config['SYNC_POLL_INTERVAL'])
    app.extensions['meterwatch'] = Services(adapter, sync_engine, OcrClient(config_class))

    try:
        init_db(engine)
        adapter.seed_defaults(app.config['BOOTSTRAP_ADMIN_PASSWORD'])
    except Exception as e:
        logger.error(f"Error during database initialization: {e}", exc_info=True)
        # Don't crash the app - the poll loop keeps retrying and the
        # health endpoint reports the failure

    if app.config.get('SYNC_AUTOSTART', True):
        sync_engine.start()
    else:
        sync_engine.refresh_now()

    return app


def _register_error_handlers(app):
    @app.errorhandler(TransientIOError)
    def handle_transient(exc):
        logger.warning(f"Store unavailable: {exc}")
        return jsonify({'error': 'Shared store is unavailable, please retry'}), 503

    @app.errorhandler(MalformedInputError)
    def handle_malformed(exc):
        return jsonify({'error': str(exc)}), 400

    @app.errorhandler(AuthenticationError)
    def handle_authentication(exc):
        return jsonify({'error': str(exc)}), 401

    @app.errorhandler(StaleSessionError)
    def handle_stale_session(exc):
        session.pop('user_id', None)
        return jsonify({'error': str(exc), 'signedOut': True}), 401
