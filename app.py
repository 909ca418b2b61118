# app.py - GarageMap API entry point
import logging
import os

from dotenv import load_dotenv

load_dotenv()

from garage_core import create_app, db  # noqa: E402

logger = logging.getLogger(__name__)

# Explicitly get FLASK_ENV, default to 'production'
env = os.getenv('FLASK_ENV', 'production')
app = create_app(env)


def ensure_directories():
    """Create the local invoice folder if it doesn't exist."""
    os.makedirs(app.config['LOCAL_STORAGE_FOLDER'], exist_ok=True)


if __name__ == '__main__':
    with app.app_context():
        db.create_all()
        ensure_directories()
        logger.info("Tables created and directories checked")

    app.run(host='0.0.0.0', port=int(os.getenv('PORT', 5000)), debug=app.config.get('DEBUG', False))
