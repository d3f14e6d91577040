"""
Profile routes for EduLMS.
Profile view and edit, avatar upload, notification settings, password change
and account deletion.
"""
import logging

from flask import Blueprint, flash, g, jsonify, redirect, render_template, request, url_for

from edulms.auth import current_user, login_required, logout_user
from edulms.errors import AuthError, LMSError
from edulms.services import profile
from edulms.services.auth_service import AuthService
from edulms.services.datastore import USERS, get_store

profile_bp = Blueprint('profile', __name__)
logger = logging.getLogger(__name__)


@profile_bp.route('/profile')
@login_required
def profile_page():
    try:
        context = profile.profile_page(get_store(), current_user())
    except LMSError as e:
        logger.error("Error loading profile: %s", e)
        flash('Error loading profile', 'error')
        context = {"user": current_user(), "stats": {}, "courses": [], "achievements": [], "settings": {}}
    return render_template('profile.html', **context)


@profile_bp.route('/profile', methods=['POST'])
@login_required
def save_profile():
    try:
        profile.save_profile(get_store(), current_user()['id'], request.form)
        flash('Profile updated successfully!', 'success')
    except LMSError as e:
        flash(e.message, 'error')
    return redirect(url_for('profile.profile_page'))


@profile_bp.route('/profile/avatar', methods=['POST'])
@login_required
def upload_avatar():
    file = request.files.get('avatar')
    if not file or not file.filename:
        flash('Please select an image file', 'error')
        return redirect(url_for('profile.profile_page'))
    try:
        profile.upload_avatar(get_store(), current_user()['id'], file.mimetype, file.read())
        flash('Profile picture updated!', 'success')
    except LMSError as e:
        logger.error("Avatar upload failed: %s", e)
        flash(e.message, 'error')
    return redirect(url_for('profile.profile_page'))


@profile_bp.route('/profile/password', methods=['POST'])
@login_required
def change_password():
    user = current_user()
    form = request.form
    if form.get('new_password') != form.get('confirm_password'):
        flash('Passwords do not match', 'error')
        return redirect(url_for('profile.profile_page'))
    try:
        AuthService(get_store()).change_password(
            user['id'], user['email'], form.get('current_password') or '', form.get('new_password') or '')
        flash('Password updated successfully!', 'success')
    except AuthError as e:
        flash(e.message, 'error')
    return redirect(url_for('profile.profile_page'))


@profile_bp.route('/profile/delete', methods=['POST'])
@login_required
def delete_account():
    user = current_user()
    if request.form.get('confirm') != 'DELETE':
        flash('Type DELETE to confirm', 'error')
        return redirect(url_for('profile.profile_page'))
    try:
        AuthService(get_store()).delete_account(user['id'], user['email'], request.form.get('password') or '')
    except LMSError as e:
        flash(e.message, 'error')
        return redirect(url_for('profile.profile_page'))

    logout_user()
    flash('Your account has been deleted', 'success')
    return redirect(url_for('auth.login_page'))


@profile_bp.route('/api/profile/settings', methods=['POST'])
def update_setting():
    """Toggle one notification/appearance setting for the token's user."""
    data = request.get_json(silent=True) or {}
    store = get_store()
    try:
        user = store.get_or_404(USERS, g.user_id, "User")
        settings = profile.update_setting(store, user, data.get('name'), data.get('value'))
    except LMSError as e:
        return jsonify({"error": e.message}), e.status_code
    return jsonify({"settings": settings})
