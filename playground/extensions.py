"""
Deferred extension instances.

Created here, bound to the app in create_app() via init_app().
"""

from flask import current_app
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

db = SQLAlchemy()
migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],  # No global limit; the capture endpoint stays open
    storage_uri="memory://",
)


def get_event_store():
    """Return the EventStore bound to the current app in create_app()."""
    return current_app.extensions["event_store"]
