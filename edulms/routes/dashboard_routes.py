"""
Dashboard routes for EduLMS.
Student, instructor and admin dashboards plus the admin's user, course and
settings actions.
"""
import logging

from flask import Blueprint, flash, redirect, render_template, request, url_for

from edulms.auth import current_user, login_required, role_required
from edulms.errors import LMSError
from edulms.services import dashboards
from edulms.services.courses import delete_course as remove_course
from edulms.services.datastore import get_store
from edulms.utils import display_name

dashboard_bp = Blueprint('dashboard', __name__)
logger = logging.getLogger(__name__)


@dashboard_bp.route('/dashboard')
@login_required
def student_dashboard():
    try:
        context = dashboards.student_dashboard(get_store(), current_user())
    except LMSError as e:
        logger.error("Error loading dashboard: %s", e)
        flash('Error loading dashboard', 'error')
        context = {"user": current_user(), "stats": {}, "courses": [], "deadlines": []}
    return render_template('dashboard.html', **context)


@dashboard_bp.route('/instructor')
@role_required('instructor', 'admin')
def instructor_dashboard():
    try:
        context = dashboards.instructor_overview(get_store(), current_user())
    except LMSError as e:
        logger.error("Error loading instructor dashboard: %s", e)
        flash('Error loading dashboard', 'error')
        context = {"courses": [], "assignments": [], "pending_submissions": [], "students": [], "stats": {}}
    return render_template('instructor.html', user=current_user(), **context)


@dashboard_bp.route('/admin')
@role_required('admin')
def admin_dashboard():
    try:
        context = dashboards.admin_overview(get_store())
    except LMSError as e:
        logger.error("Error loading admin dashboard: %s", e)
        flash('Error loading dashboard', 'error')
        context = {"users": [], "courses": [], "logs": [], "settings": {}, "stats": {}}
    return render_template('admin.html', user=current_user(), **context)


# ══════════════════════════════════════════════════════════════
# ADMIN ACTIONS
# ══════════════════════════════════════════════════════════════

def _log_admin(action, details):
    admin = current_user()
    get_store().log_activity(admin['id'], display_name(admin), action, details)


@dashboard_bp.route('/admin/users/<user_id>', methods=['POST'])
@role_required('admin')
def save_user(user_id):
    try:
        dashboards.save_user(get_store(), user_id, request.form)
        _log_admin('user_updated', user_id)
        flash('User updated successfully!', 'success')
    except LMSError as e:
        flash(e.message, 'error')
    return redirect(url_for('dashboard.admin_dashboard'))


@dashboard_bp.route('/admin/users/<user_id>/delete', methods=['POST'])
@role_required('admin')
def delete_user(user_id):
    if user_id == current_user()['id']:
        flash('You cannot delete your own account from here', 'error')
        return redirect(url_for('dashboard.admin_dashboard'))
    try:
        dashboards.delete_user(get_store(), user_id)
        _log_admin('user_deleted', user_id)
        flash('User deleted successfully!', 'success')
    except LMSError as e:
        flash(e.message, 'error')
    return redirect(url_for('dashboard.admin_dashboard'))


@dashboard_bp.route('/admin/courses/<course_id>/delete', methods=['POST'])
@role_required('admin')
def delete_course(course_id):
    try:
        remove_course(get_store(), course_id)
        _log_admin('course_deleted', course_id)
        flash('Course deleted successfully!', 'success')
    except LMSError as e:
        flash(e.message, 'error')
    return redirect(url_for('dashboard.admin_dashboard'))


@dashboard_bp.route('/admin/settings', methods=['POST'])
@role_required('admin')
def save_settings():
    try:
        dashboards.save_settings(get_store(), request.form)
        _log_admin('settings_updated', '')
        flash('Settings saved successfully!', 'success')
    except LMSError as e:
        flash(e.message, 'error')
    return redirect(url_for('dashboard.admin_dashboard'))


@dashboard_bp.route('/admin/backup', methods=['POST'])
@role_required('admin')
def backup():
    try:
        dashboards.perform_backup(get_store())
        _log_admin('backup_performed', '')
        flash('Backup completed successfully!', 'success')
    except LMSError as e:
        flash(e.message, 'error')
    return redirect(url_for('dashboard.admin_dashboard'))
