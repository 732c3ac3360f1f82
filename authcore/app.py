"""Flask application factory."""
import re

from flask import Flask, jsonify, make_response
from typing import Optional, Dict, Any

from authcore import __version__


def create_app(config: Optional[Dict[str, Any]] = None) -> Flask:
    """
    Create and configure Flask application.

    Args:
        config: Optional configuration dictionary to override defaults.
            A dict with ``TESTING`` set starts from the testing defaults.

    Returns:
        Configured Flask application instance.
    """
    app = Flask(__name__)

    # Load configuration
    from authcore.config import get_config
    env = "testing" if config and config.get("TESTING") else None
    app.config.from_object(get_config(env)())
    if config:
        app.config.update(config)

    from authcore.logging_config import configure_logging
    configure_logging(app)

    # Initialize extensions
    from authcore.extensions import db, limiter
    db.init_app(app)
    limiter.init_app(app)

    # Initialize DI container
    from authcore.container import Container
    container = Container()
    container.config.from_dict(dict(app.config))

    # db.session is request/thread scoped already, one override serves
    # both requests and CLI commands
    container.db_session.override(db.session)
    app.container = container

    # Register blueprints
    from authcore.routes import auth_bp
    app.register_blueprint(auth_bp)

    # Register CLI commands
    from authcore.cli import init_db_command, reset_tokens_cli
    app.cli.add_command(init_db_command)
    app.cli.add_command(reset_tokens_cli)

    # Health check endpoint
    @app.route("/api/v1/health")
    def health():
        """Health check endpoint."""
        return jsonify({
            "status": "ok",
            "service": "authcore",
            "version": __version__
        }), 200

    # Error handlers
    @app.errorhandler(404)
    def not_found(error):
        """Handle 404 errors."""
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        """Handle 405 errors."""
        return jsonify({"error": "Method not allowed"}), 405

    @app.errorhandler(500)
    def internal_error(error):
        """Handle 500 errors."""
        app.logger.error("Unhandled error: %s", getattr(error, "original_exception", error))
        return jsonify({"error": "Internal server error"}), 500

    @app.errorhandler(429)
    def ratelimit_handler(error):
        """Handle rate limit exceeded errors with JSON response."""
        response = make_response(jsonify({
            "error": "Rate limit exceeded",
            "message": str(error.description)
        }), 429)
        # "5 per 1 minute" -> 60
        match = re.search(r"per (\d+) (second|minute|hour)", str(error.description).lower())
        if match:
            value = int(match.group(1))
            unit = match.group(2)
            multiplier = {"second": 1, "minute": 60, "hour": 3600}[unit]
            response.headers["Retry-After"] = str(value * multiplier)
        else:
            response.headers["Retry-After"] = "60"
        return response

    return app
