"""
Assignment submission: file uploads, text answers and links, plus resubmission.
"""
import logging

from edulms.errors import ValidationError
from edulms.services import storage
from edulms.services.datastore import ASSIGNMENTS, SUBMISSIONS, USERS
from edulms.utils import now_iso, parse_timestamp, utcnow

logger = logging.getLogger(__name__)

MAX_TEXT_LENGTH = 5000

SUBMISSION_TYPE_LABELS = {
    'file': 'File Upload',
    'text': 'Text/Answer',
    'url': 'URL/Link',
}


def format_submission_type(submission_type):
    return SUBMISSION_TYPE_LABELS.get(submission_type, submission_type or '')


def due_status(due_date, now=None):
    """'Past Due', 'Due Today' or '' for an assignment due date."""
    due = parse_timestamp(due_date)
    if due is None:
        return ''
    now = now or utcnow()
    if now > due:
        return 'Past Due'
    if due.date() == now.date():
        return 'Due Today'
    return ''


def find_submission(store, assignment_id, student_id):
    found = store.query(SUBMISSIONS, [
        ('assignment_id', '==', assignment_id),
        ('student_id', '==', student_id),
    ], limit=1)
    return found[0] if found else None


def submit_assignment(store, student_id, assignment_id, form, upload=None):
    """
    Create or replace the student's submission for an assignment.

    Args:
        form: submitted fields (`content`, `comments`)
        upload: optional (filename, content_type, data) for file assignments

    Returns:
        (submission, resubmitted)
    """
    assignment = store.get_or_404(ASSIGNMENTS, assignment_id, "Assignment")
    submission_type = assignment.get('submission_type', 'file')

    data = {
        "assignment_id": assignment_id,
        "course_id": assignment.get('course_id'),
        "student_id": student_id,
        "submitted_at": now_iso(),
        "status": "submitted",
        "score": None,
        "feedback": None,
        "graded_by": None,
        "graded_at": None,
        "comments": form.get('comments', ''),
    }

    if submission_type == 'file':
        if upload is None:
            raise ValidationError("Please select a file to upload")
        filename, content_type, blob = upload
        storage.validate_submission_file(filename, content_type, len(blob))
        data['file_url'] = storage.upload(storage.submission_path(student_id, assignment_id, filename), blob, content_type)
        data['file_name'] = filename
    else:
        content = (form.get('content') or '').strip()
        if not content:
            raise ValidationError("Please enter your submission")
        if submission_type == 'text':
            content = content[:MAX_TEXT_LENGTH]
        data['content'] = content

    existing = find_submission(store, assignment_id, student_id)
    if existing:
        submission = store.update(SUBMISSIONS, existing['id'], data) or {**existing, **data}
        logger.info("Assignment %s resubmitted by %s", assignment_id, student_id)
    else:
        submission = store.create(SUBMISSIONS, data)
        logger.info("Assignment %s submitted by %s", assignment_id, student_id)

    _bump_submission_count(store, student_id)
    return submission, existing is not None


def _bump_submission_count(store, student_id):
    try:
        user = store.get(USERS, student_id)
        if user is not None:
            store.update(USERS, student_id, {"submissions": (user.get('submissions') or 0) + 1})
    except Exception as e:
        logger.error("Error updating user stats: %s", e)
