# garage_core/__init__.py
import logging
import os

from flask import Flask, current_app, jsonify, request
from flask_babel import Babel
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_sqlalchemy import SQLAlchemy
from flask_wtf.csrf import CSRFProtect

# Single extension instances, bound to the app in create_app()
db = SQLAlchemy()
bcrypt = Bcrypt()
csrf = CSRFProtect()
babel = Babel()
login_manager = LoginManager()

from .config import config as app_config

logger = logging.getLogger(__name__)


def get_locale():
    supported = current_app.config.get('BABEL_SUPPORTED_LOCALES') or ['en']
    lang = request.args.get('lang')
    if lang in supported:
        return lang
    return request.accept_languages.best_match(supported)


def configure_logging(app):
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    package_logger = logging.getLogger(__name__)
    package_logger.setLevel(level)
    if not package_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter('%(asctime)s %(levelname)s [%(name)s] %(message)s'))
        package_logger.addHandler(handler)


def create_app(config_name=None, config_overrides=None):
    app = Flask(
        __name__,
        static_folder=os.path.join(os.path.dirname(os.path.dirname(__file__)), 'static')
    )

    # Load config
    env = config_name or os.getenv('FLASK_ENV') or 'production'
    config_class = app_config.get(env)
    if not config_class:
        raise ValueError(f"Unknown config: {env}")

    config_instance = config_class()
    config_instance.validate()
    app.config.from_object(config_instance)
    if config_overrides:
        app.config.update(config_overrides)

    configure_logging(app)
    logger.info("Loaded config: %s", env)

    # Initialize extensions
    db.init_app(app)
    bcrypt.init_app(app)
    csrf.init_app(app)
    babel.init_app(app, locale_selector=get_locale)

    login_manager.init_app(app)
    login_manager.session_protection = 'basic'

    @login_manager.user_loader
    def load_user(user_id):
        from .models import User
        return db.session.get(User, user_id)

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'Authentication required.'}), 401

    from .utils.s3_storage import build_invoice_storage
    app.extensions['invoice_storage'] = build_invoice_storage(app.config)

    from .views import register_views
    register_views(app)

    from .cli import register_commands
    register_commands(app)

    return app


# Expose models for easy import
from .models import (  # noqa: E402
    User,
    Service,
    Customer,
    Vehicle,
    Job,
    InventoryItem,
    Part,
    MenuItem,
    Sale,
    Invoice,
)
