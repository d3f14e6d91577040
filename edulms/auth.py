"""
Request authentication for EduLMS.

/api/ routes take a Supabase JWT, either as a Bearer token or from the
browser session, except the public endpoints below. HTML pages use the
Flask session set at sign-in together with the login_required/role_required
decorators.
"""
import functools
import logging

import jwt
from flask import flash, g, jsonify, redirect, request, session, url_for

from edulms.config import config
from edulms.services import supabase_client
from edulms.services.datastore import USERS, get_store

logger = logging.getLogger(__name__)

# Routes that don't require authentication
PUBLIC_PREFIXES = [
    '/api/user-stats',      # Aggregation endpoints (mirrors the HTTP functions)
    '/api/course-details',
    '/api/webhooks/',       # Database webhooks, checked against WEBHOOK_SECRET
    '/api/auth/',
]

PUBLIC_EXACT = [
    '/api/health',
]


def get_jwt_secret():
    """Get the Supabase JWT secret from config."""
    secret = config.supabase_jwt_secret
    if not secret:
        raise RuntimeError('SUPABASE_JWT_SECRET not configured')
    return secret


def validate_token(token):
    """
    Validate a Supabase JWT and return the decoded payload.
    Returns None if invalid.
    """
    try:
        return jwt.decode(
            token,
            get_jwt_secret(),
            algorithms=['HS256'],
            audience='authenticated',
        )
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None


def is_public_route(path):
    """Check if a route is public (no auth required)."""
    if path in PUBLIC_EXACT:
        return True
    return any(path.startswith(prefix) for prefix in PUBLIC_PREFIXES)


def _request_token():
    auth_header = request.headers.get('Authorization', '')
    if auth_header.startswith('Bearer '):
        return auth_header[7:]
    return session.get('access_token')


def _refresh_session_token():
    """
    Swap the session's refresh token for a new access token.

    Supabase access tokens expire after about an hour while the page session
    lives on, so browser calls that rely on the session token renew it here.
    Returns the new access token, or None if the refresh was refused.
    """
    refresh_token = session.get('refresh_token')
    if not refresh_token:
        return None
    try:
        res = supabase_client.get_auth_client().auth.refresh_session(refresh_token)
    except Exception as e:
        logger.warning("Session refresh failed: %s", e)
        return None
    if res.session is None:
        return None
    session['access_token'] = res.session.access_token
    session['refresh_token'] = res.session.refresh_token
    return res.session.access_token


def init_auth(app):
    """
    Register the before_request auth hook on the Flask app.
    Call this BEFORE registering blueprints.
    """
    @app.before_request
    def check_auth():
        # Pages handle their own session checks
        if not request.path.startswith('/api/'):
            return None

        if is_public_route(request.path):
            return None

        token = _request_token()
        if not token:
            return jsonify({'error': 'Authentication required'}), 401

        payload = validate_token(token)
        if payload is None and token == session.get('access_token'):
            token = _refresh_session_token()
            payload = validate_token(token) if token else None
        if payload is None:
            return jsonify({'error': 'Invalid or expired token'}), 401

        g.user_id = payload.get('sub')
        g.user_email = payload.get('email', '')


# ══════════════════════════════════════════════════════════════
# SESSION HELPERS FOR PAGES
# ══════════════════════════════════════════════════════════════

def login_user(user, auth_session=None):
    session.clear()
    session['user_id'] = user['id']
    session['role'] = user.get('role', 'student')
    if auth_session is not None:
        session['access_token'] = getattr(auth_session, 'access_token', None)
        session['refresh_token'] = getattr(auth_session, 'refresh_token', None)


def logout_user():
    session.clear()
    g.pop('current_user', None)


def current_user():
    """Profile document of the signed-in user, loaded once per request."""
    if 'current_user' not in g:
        user_id = session.get('user_id')
        g.current_user = get_store().get(USERS, user_id) if user_id else None
    return g.current_user


def login_required(view):
    @functools.wraps(view)
    def wrapped(*args, **kwargs):
        if current_user() is None:
            session.clear()
            flash('Please sign in to continue', 'error')
            return redirect(url_for('auth.login_page', next=request.path))
        return view(*args, **kwargs)
    return wrapped


def role_required(*roles):
    """Redirect to the student dashboard when the user's role is not allowed."""
    def decorator(view):
        @functools.wraps(view)
        @login_required
        def wrapped(*args, **kwargs):
            user = current_user()
            if user.get('role') not in roles:
                logger.warning("User %s (%s) denied access to %s", user['id'], user.get('role'), request.path)
                flash('You do not have permission to view that page', 'error')
                return redirect(url_for('dashboard.student_dashboard'))
            return view(*args, **kwargs)
        return wrapped
    return decorator
