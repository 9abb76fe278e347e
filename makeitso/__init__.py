import os
from typing import Optional

from flask import Flask

from .routes import bp as routes_bp
from .store import ProfileStore
from .utils import Locations

# Bind only localhost unless overridden
BIND = os.environ.get("BIND", "127.0.0.1")
PORT = int(os.environ.get("PORT", "5000"))
EXTENSION_KEY = "makeitso"


def create_app(store: Optional[ProfileStore] = None, home: Optional[str] = None) -> Flask:
    """Build the web UI around ``store`` (loaded from disk when not given)."""
    if store is None:
        locations = Locations(home)
        store = ProfileStore(locations)
        store.load()

    app = Flask(__name__)
    app.secret_key = os.environ.get("FLASK_SECRET", "dev-" + os.urandom(8).hex())
    app.config["APP_TITLE"] = "Make It So"
    app.config["LOCATIONS"] = store.locations
    app.config["CONFIG_FILE"] = store.config_path
    app.extensions[EXTENSION_KEY] = store

    app.register_blueprint(routes_bp)
    return app
