"""Flask application factory and modular structure for modsync."""

from flask import Flask
from flask_cors import CORS
from .dashboard.blueprint import api_bp
from .services.content_service import ContentService
from .utils.config import get_config


def create_app(config=None, service=None):
    """Create and configure Flask application."""
    app = Flask(__name__)

    # Enable CORS for all routes
    CORS(app)

    # Load configuration
    config = config if config is not None else get_config()
    app.config.update(config)
    app.extensions['modsync'] = service or ContentService(config)

    # Register blueprints
    app.register_blueprint(api_bp)

    # Register error handlers
    @app.errorhandler(404)
    def not_found(error):
        return {"error": "Not found"}, 404

    @app.errorhandler(500)
    def internal_error(error):
        return {"error": "Internal server error"}, 500

    return app
