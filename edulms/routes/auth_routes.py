"""
Auth routes for EduLMS.
Sign-in and registration pages, Google OAuth redirect/callback, sign-out,
and a JSON login endpoint for API clients.
"""
import logging

from flask import Blueprint, flash, jsonify, redirect, render_template, request, session, url_for

from edulms.auth import current_user, login_user, logout_user
from edulms.config import config
from edulms.errors import AuthError
from edulms.services.auth_service import AuthService
from edulms.services.datastore import get_store

auth_bp = Blueprint('auth', __name__)
logger = logging.getLogger(__name__)

DASHBOARDS = {
    'admin': 'dashboard.admin_dashboard',
    'instructor': 'dashboard.instructor_dashboard',
}


def dashboard_url(user):
    return url_for(DASHBOARDS.get(user.get('role'), 'dashboard.student_dashboard'))


def _safe_next(target):
    # only same-site relative paths
    if target and target.startswith('/') and not target.startswith('//'):
        return target
    return None


@auth_bp.route('/')
def index():
    user = current_user()
    if user is not None:
        return redirect(dashboard_url(user))
    return redirect(url_for('auth.login_page'))


@auth_bp.route('/login', methods=['GET'])
def login_page():
    return render_template('login.html', next=request.args.get('next', ''))


@auth_bp.route('/login', methods=['POST'])
def login():
    email = (request.form.get('email') or '').strip()
    password = request.form.get('password') or ''
    try:
        user, auth_session = AuthService(get_store()).sign_in(email, password)
    except AuthError as e:
        flash(e.message, 'error')
        return redirect(url_for('auth.login_page'))
    except Exception as e:
        logger.error("Login failed for %s: %s", email, e)
        flash('An error occurred. Please try again.', 'error')
        return redirect(url_for('auth.login_page'))

    login_user(user, auth_session)
    flash('Login successful!', 'success')
    return redirect(_safe_next(request.form.get('next')) or dashboard_url(user))


@auth_bp.route('/register', methods=['POST'])
def register():
    form = request.form
    email = (form.get('email') or '').strip()
    profile = {
        "name": (form.get('name') or '').strip(),
        "first_name": (form.get('first_name') or '').strip(),
        "last_name": (form.get('last_name') or '').strip(),
        "role": form.get('role', 'student'),
        "major": form.get('major', ''),
    }
    try:
        user, auth_session = AuthService(get_store()).sign_up(
            email, form.get('password') or '', form.get('confirm_password') or '', profile)
    except AuthError as e:
        flash(e.message, 'error')
        return redirect(url_for('auth.login_page', tab='register'))
    except Exception as e:
        logger.error("Registration failed for %s: %s", email, e)
        flash('An error occurred. Please try again.', 'error')
        return redirect(url_for('auth.login_page', tab='register'))

    if auth_session is None:
        # email confirmation pending
        flash('Registration successful! Check your email to confirm your account.', 'success')
        return redirect(url_for('auth.login_page'))

    login_user(user, auth_session)
    flash('Registration successful!', 'success')
    return redirect(dashboard_url(user))


@auth_bp.route('/auth/google')
def google_login():
    try:
        url, verifier = AuthService(get_store()).oauth_url(config.app_url + url_for('auth.oauth_callback'))
    except AuthError as e:
        flash(e.message, 'error')
        return redirect(url_for('auth.login_page'))
    session['oauth_code_verifier'] = verifier
    return redirect(url)


@auth_bp.route('/auth/callback')
def oauth_callback():
    try:
        user, auth_session = AuthService(get_store()).exchange_code(
            request.args.get('code'), session.pop('oauth_code_verifier', None))
    except AuthError as e:
        flash(e.message, 'error')
        return redirect(url_for('auth.login_page'))

    login_user(user, auth_session)
    flash('Login successful!', 'success')
    return redirect(dashboard_url(user))


@auth_bp.route('/logout', methods=['POST'])
def logout():
    user = current_user()
    if user is not None:
        AuthService(get_store()).sign_out(user['id'], user.get('name', ''))
    logout_user()
    flash('Logged out successfully', 'success')
    return redirect(url_for('auth.login_page'))


@auth_bp.route('/api/auth/login', methods=['POST'])
def api_login():
    """JSON sign-in; returns the access token to send as a Bearer header."""
    data = request.get_json(silent=True) or {}
    try:
        user, auth_session = AuthService(get_store()).sign_in(
            (data.get('email') or '').strip(), data.get('password') or '')
    except AuthError as e:
        return jsonify({"error": e.message}), e.status_code

    return jsonify({
        "user": {"id": user['id'], "name": user.get('name'), "role": user.get('role')},
        "access_token": getattr(auth_session, 'access_token', None),
        "refresh_token": getattr(auth_session, 'refresh_token', None),
    })


@auth_bp.app_context_processor
def inject_user():
    return {"current_user": current_user() if 'user_id' in session else None}
