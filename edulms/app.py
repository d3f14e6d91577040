#!/usr/bin/env python3
"""
EduLMS - Learning Management System
===================================
Run: python3 -m edulms.app
Then open: http://localhost:5000

Scheduled jobs: flask --app edulms.app send-reminders | update-stats
"""
import logging

from flask import Flask, render_template
from flask_cors import CORS

from edulms.auth import init_auth
from edulms.cli import register_commands
from edulms.config import DEBUG, HOST, PORT, config
from edulms.routes import register_routes

logger = logging.getLogger(__name__)


def create_app(overrides=None):
    """Build the Flask app. `overrides` is merged into app.config (used by tests)."""
    logging.basicConfig(
        level=getattr(logging, str(config.log_level).upper(), logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    app = Flask(__name__)
    app.config.from_mapping(config.to_flask())
    if overrides:
        app.config.update(overrides)

    # Aggregation endpoints are called cross-origin
    CORS(app, resources={r"/api/*": {"origins": "*"}}, send_wildcard=True)

    # Auth hook must be registered before the blueprints
    init_auth(app)
    register_routes(app)
    register_commands(app)

    @app.errorhandler(403)
    def forbidden(e):
        return render_template('error.html', code=403, message="You do not have permission to do that"), 403

    @app.errorhandler(404)
    def not_found(e):
        return render_template('error.html', code=404, message="Page not found"), 404

    @app.errorhandler(413)
    def too_large(e):
        return render_template('error.html', code=413,
                               message=f"File size exceeds {config.max_upload_mb}MB limit"), 413

    return app


app = create_app()


if __name__ == '__main__':
    logger.info("EduLMS starting on http://localhost:%s", PORT)
    app.run(host=HOST, port=PORT, debug=DEBUG, threaded=True)
