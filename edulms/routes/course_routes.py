"""
Course routes for EduLMS.
Catalog, course detail with modules and lessons, enrollment, and the
instructor's course/module/lesson editing.
"""
import logging

from flask import Blueprint, abort, flash, g, jsonify, redirect, render_template, request, url_for

from edulms.auth import current_user, login_required, role_required
from edulms.errors import LMSError, NotFound
from edulms.services import courses
from edulms.services.datastore import COURSES, LESSONS, MODULES, get_store
from edulms.services.submissions import due_status

course_bp = Blueprint('courses', __name__)
logger = logging.getLogger(__name__)


def _owned_course(store, course_id):
    """The course if the current user teaches it (or is an admin), else 403."""
    course = store.get_or_404(COURSES, course_id, "Course")
    user = current_user()
    if user.get('role') != 'admin' and course.get('instructor') != user['id']:
        abort(403)
    return course


@course_bp.route('/courses')
@login_required
def catalog():
    store = get_store()
    category = request.args.get('category') or None
    level = request.args.get('level') or None
    try:
        listing = courses.list_catalog(store, category, level)
        categories = courses.catalog_categories(store)
    except LMSError as e:
        logger.error("Error loading courses: %s", e)
        flash('Error loading courses', 'error')
        listing, categories = [], []

    return render_template(
        'catalog.html',
        courses=listing,
        categories=categories,
        enrolled=set(current_user().get('enrolled_courses') or []),
        category=category,
        level=level,
    )


@course_bp.route('/courses/<course_id>')
@login_required
def course_page(course_id):
    try:
        detail = courses.course_detail(get_store(), course_id)
    except NotFound:
        flash('Course not found', 'error')
        return redirect(url_for('courses.catalog'))

    for assignment in detail['assignments']:
        assignment['due_status'] = due_status(assignment.get('due_date'))
    user = current_user()
    return render_template(
        'course.html',
        **detail,
        is_enrolled=course_id in (user.get('enrolled_courses') or []),
        can_edit=user.get('role') == 'admin' or detail['course'].get('instructor') == user['id'],
    )


@course_bp.route('/courses/<course_id>/enroll', methods=['POST'])
@login_required
def enroll(course_id):
    user = current_user()
    try:
        _, enrolled = get_store().enroll_course(user['id'], course_id)
    except LMSError as e:
        logger.error("Error enrolling %s in %s: %s", user['id'], course_id, e)
        flash(e.message, 'error')
        return redirect(url_for('courses.catalog'))

    if enrolled:
        flash('Successfully enrolled in course!', 'success')
    else:
        flash('You are already enrolled in this course', 'success')
    return redirect(url_for('courses.course_page', course_id=course_id))


@course_bp.route('/courses/<course_id>/unenroll', methods=['POST'])
@login_required
def unenroll(course_id):
    try:
        get_store().unenroll_course(current_user()['id'], course_id)
        flash('You have left the course', 'success')
    except LMSError as e:
        flash(e.message, 'error')
    return redirect(url_for('dashboard.student_dashboard'))


# ══════════════════════════════════════════════════════════════
# INSTRUCTOR EDITING
# ══════════════════════════════════════════════════════════════

@course_bp.route('/courses', methods=['POST'])
@role_required('instructor', 'admin')
def create_course():
    try:
        course = courses.create_course(get_store(), current_user(), request.form)
    except LMSError as e:
        flash(e.message, 'error')
        return redirect(url_for('dashboard.instructor_dashboard'))
    flash('Course created successfully!', 'success')
    return redirect(url_for('courses.course_page', course_id=course['id']))


@course_bp.route('/courses/<course_id>/edit', methods=['POST'])
@role_required('instructor', 'admin')
def edit_course(course_id):
    store = get_store()
    try:
        _owned_course(store, course_id)
        courses.update_course(store, course_id, request.form.to_dict())
        flash('Course updated successfully!', 'success')
    except LMSError as e:
        flash(e.message, 'error')
    return redirect(url_for('courses.course_page', course_id=course_id))


@course_bp.route('/courses/<course_id>/modules', methods=['POST'])
@role_required('instructor', 'admin')
def save_module(course_id):
    store = get_store()
    try:
        _owned_course(store, course_id)
        courses.save_module(store, course_id, request.form, request.form.get('module_id') or None)
        flash('Module saved successfully!', 'success')
    except LMSError as e:
        flash(e.message, 'error')
    return redirect(url_for('courses.course_page', course_id=course_id))


@course_bp.route('/modules/<module_id>/delete', methods=['POST'])
@role_required('instructor', 'admin')
def delete_module(module_id):
    store = get_store()
    module = store.get(MODULES, module_id)
    if module is None:
        flash('Module not found', 'error')
        return redirect(url_for('courses.catalog'))
    try:
        _owned_course(store, module['course_id'])
        courses.delete_module(store, module_id)
        flash('Module deleted successfully!', 'success')
    except LMSError as e:
        flash(e.message, 'error')
    return redirect(url_for('courses.course_page', course_id=module['course_id']))


@course_bp.route('/courses/<course_id>/modules/<module_id>/lessons', methods=['POST'])
@role_required('instructor', 'admin')
def save_lesson(course_id, module_id):
    store = get_store()
    try:
        _owned_course(store, course_id)
        courses.save_lesson(store, course_id, module_id, request.form)
        flash('Lesson added successfully!', 'success')
    except LMSError as e:
        flash(e.message, 'error')
    return redirect(url_for('courses.course_page', course_id=course_id))


@course_bp.route('/api/lessons/<lesson_id>/toggle', methods=['POST'])
def toggle_lesson(lesson_id):
    """Flip a lesson's completed flag; returns the lesson and the course progress."""
    store = get_store()
    try:
        lesson = courses.toggle_lesson_completion(store, lesson_id)
        lessons = store.query(LESSONS, [('course_id', '==', lesson['course_id'])])
    except LMSError as e:
        return jsonify({"error": e.message}), e.status_code

    logger.info("Lesson %s toggled by %s", lesson_id, g.user_id)
    return jsonify({"lesson": lesson, "progress": courses.course_progress(lessons)})
