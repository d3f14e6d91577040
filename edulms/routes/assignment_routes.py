"""
Assignment routes for EduLMS.
Students submit and resubmit work; instructors create assignments and grade submissions.
"""
import logging

from flask import Blueprint, flash, redirect, render_template, request, url_for

from edulms.auth import current_user, login_required, role_required
from edulms.errors import LMSError, NotFound
from edulms.services import storage
from edulms.services.dashboards import create_assignment
from edulms.services.datastore import ASSIGNMENTS, COURSES, SUBMISSIONS, get_store
from edulms.services.grading import grade_submission
from edulms.services.submissions import (
    MAX_TEXT_LENGTH, due_status, find_submission, format_submission_type, submit_assignment,
)
from edulms.utils import format_date

assignment_bp = Blueprint('assignments', __name__)
logger = logging.getLogger(__name__)


@assignment_bp.route('/assignments/<assignment_id>/submit', methods=['GET'])
@login_required
def submit_page(assignment_id):
    store = get_store()
    assignment = store.get(ASSIGNMENTS, assignment_id)
    if assignment is None:
        flash('Assignment not found', 'error')
        return redirect(url_for('dashboard.student_dashboard'))

    course = store.get(COURSES, assignment.get('course_id')) or {}
    submission = find_submission(store, assignment_id, current_user()['id'])
    if submission and submission.get('file_name'):
        submission['file_icon'] = storage.file_icon(submission['file_name'])
    return render_template(
        'submit.html',
        assignment=assignment,
        course=course,
        submission=submission,
        due=format_date(assignment.get('due_date')),
        due_status=due_status(assignment.get('due_date')),
        submission_type=format_submission_type(assignment.get('submission_type')),
        max_text_length=MAX_TEXT_LENGTH,
        accepted=','.join('.' + ext for ext in storage.FILE_ICONS),
    )


@assignment_bp.route('/assignments/<assignment_id>/submit', methods=['POST'])
@login_required
def submit(assignment_id):
    upload = None
    file = request.files.get('file')
    if file and file.filename:
        upload = (file.filename, file.mimetype, file.read())

    try:
        _, resubmitted = submit_assignment(get_store(), current_user()['id'], assignment_id, request.form, upload)
    except NotFound as e:
        flash(e.message, 'error')
        return redirect(url_for('dashboard.student_dashboard'))
    except LMSError as e:
        logger.error("Submission failed for %s: %s", assignment_id, e)
        flash(e.message, 'error')
        return redirect(url_for('assignments.submit_page', assignment_id=assignment_id))

    flash('Assignment resubmitted successfully!' if resubmitted else 'Assignment submitted successfully!', 'success')
    return redirect(url_for('assignments.submit_page', assignment_id=assignment_id))


@assignment_bp.route('/assignments', methods=['POST'])
@role_required('instructor', 'admin')
def create():
    try:
        create_assignment(get_store(), current_user()['id'], request.form)
        flash('Assignment created successfully!', 'success')
    except LMSError as e:
        flash(e.message, 'error')
    return redirect(url_for('dashboard.instructor_dashboard'))


@assignment_bp.route('/submissions/<submission_id>/grade', methods=['POST'])
@role_required('instructor', 'admin')
def grade(submission_id):
    store = get_store()
    user = current_user()
    submission = store.get(SUBMISSIONS, submission_id)
    if submission is None:
        flash('Submission not found', 'error')
        return redirect(url_for('dashboard.instructor_dashboard'))

    course = store.get(COURSES, submission.get('course_id')) or {}
    if user.get('role') != 'admin' and course.get('instructor') != user['id']:
        flash('You can only grade submissions in your own courses', 'error')
        return redirect(url_for('dashboard.instructor_dashboard'))

    try:
        grade_submission(store, user['id'], submission_id, request.form.get('score'), request.form.get('feedback', ''))
        flash('Submission graded successfully!', 'success')
    except LMSError as e:
        flash(e.message, 'error')
    return redirect(url_for('dashboard.instructor_dashboard'))
