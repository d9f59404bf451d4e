"""Application factory for a test auth app."""

from typing import Any, Optional

from flask import Flask

from . import auth, users
from .app_logging import setup_logger


def create_web_app(create_db: bool = False,
                   **config: Any) -> Flask:
    """Initialize and configure an app with the gateway attached."""
    app = Flask('dirauth')
    app.config.from_object('dirauth.config')
    app.config.update(config)
    setup_logger(app.config.get('LOGLEVEL', 'INFO'))

    auth.Auth(app)

    if create_db:
        with app.app_context():
            users.current_store().create_all()

    return app
