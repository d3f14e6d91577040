"""
EduLMS Routes
=============

One blueprint per area of the application.

Usage:
    from edulms.routes import register_routes
    register_routes(app)
"""
from .auth_routes import auth_bp
from .course_routes import course_bp
from .assignment_routes import assignment_bp
from .dashboard_routes import dashboard_bp
from .gradebook_routes import gradebook_bp
from .search_routes import search_bp
from .profile_routes import profile_bp
from .stats_routes import stats_bp
from .webhook_routes import webhook_bp


def register_routes(app):
    """Register all route blueprints with the Flask app."""
    app.register_blueprint(auth_bp)
    app.register_blueprint(course_bp)
    app.register_blueprint(assignment_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(gradebook_bp)
    app.register_blueprint(search_bp)
    app.register_blueprint(profile_bp)
    app.register_blueprint(stats_bp)
    app.register_blueprint(webhook_bp)


__all__ = [
    'register_routes',
    'auth_bp',
    'course_bp',
    'assignment_bp',
    'dashboard_bp',
    'gradebook_bp',
    'search_bp',
    'profile_bp',
    'stats_bp',
    'webhook_bp',
]
