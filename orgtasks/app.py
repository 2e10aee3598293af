import atexit
import logging
import secrets

from flask import Flask, jsonify
from flask_cors import CORS
from firebase_admin import firestore

from orgtasks import __version__
from orgtasks.api import auth_bp, organizations_bp, tasks_bp
from orgtasks.config.settings import Settings
from orgtasks.firebase_utils import init_firebase
from orgtasks.middleware.error_middleware import register_error_handlers
from orgtasks.services.expiry_service import TaskExpiryService
from orgtasks.services.scheduler import SweepScheduler

logger = logging.getLogger(__name__)

CONFIG_KEYS = (
    'SECRET_KEY', 'DEV_MODE', 'CORS_ORIGINS', 'FRONTEND_URL',
    'JWT_SECRET', 'JWT_ALGORITHM', 'JWT_EXPIRES_HOURS', 'BCRYPT_ROUNDS',
    'INVITATION_TTL_HOURS', 'REMINDER_WINDOW_HOURS',
    'ENABLE_SCHEDULER', 'EXPIRY_SWEEP_INTERVAL_SECONDS',
    'REMINDER_SWEEP_INTERVAL_SECONDS', 'REMINDER_SWEEP_OFFSET_SECONDS',
)


def create_app(config_overrides: dict = None):
    """Create and configure the Flask application.

    Args:
        config_overrides: values applied on top of ``Settings``. Tests pass
            ``TESTING=True`` which also skips Firebase initialization.
    """
    app = Flask(__name__)
    for key in CONFIG_KEYS:
        app.config[key] = getattr(Settings, key)
    app.config.update(config_overrides or {})

    if not app.config.get('JWT_SECRET'):
        Settings.validate()
        logger.warning("JWT_SECRET is not set; using a random secret for this process only")
        app.config['JWT_SECRET'] = secrets.token_hex(32)

    CORS(app,
         resources={r"/api/*": {"origins": app.config['CORS_ORIGINS']}},
         allow_headers=["Content-Type", "Authorization"],
         methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"])

    # Initialize Firebase (allow app to start even if Firebase fails)
    if app.config.get('TESTING') or app.config.get('DEV_MODE'):
        firebase_initialized = False
    else:
        firebase_initialized = init_firebase()

    @app.get("/")
    def health():
        return jsonify({
            "status": "ok",
            "service": "orgtasks-api",
            "version": __version__,
            "firebase": "connected" if firebase_initialized else "not configured"
        }), 200

    register_error_handlers(app)

    app.register_blueprint(auth_bp)
    app.register_blueprint(organizations_bp)
    app.register_blueprint(tasks_bp)

    return app


def build_scheduler(app) -> SweepScheduler:
    config = app.config
    return SweepScheduler(
        lambda: TaskExpiryService(firestore.client(),
                                  reminder_window_hours=config['REMINDER_WINDOW_HOURS']),
        expiry_interval=config['EXPIRY_SWEEP_INTERVAL_SECONDS'],
        reminder_interval=config['REMINDER_SWEEP_INTERVAL_SECONDS'],
        reminder_offset=config['REMINDER_SWEEP_OFFSET_SECONDS'],
    )


def main():
    Settings.validate()
    app = create_app()
    if app.config['ENABLE_SCHEDULER']:
        scheduler = build_scheduler(app)
        scheduler.start()
        atexit.register(scheduler.stop)
    app.run(host="0.0.0.0", port=Settings.PORT, debug=Settings.DEBUG, use_reloader=False)


if __name__ == "__main__":
    main()
