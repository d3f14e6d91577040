"""
Grading: score a submission and write the derived grade record used for reporting.
The grade-posted email is sent by the webhook handler when the grade row is inserted.
"""
import logging

from edulms.errors import ValidationError
from edulms.services.datastore import ASSIGNMENTS, GRADES, SUBMISSIONS
from edulms.utils import calculate_percentage, now_iso

logger = logging.getLogger(__name__)


def parse_score(value, max_score):
    try:
        score = int(str(value).strip())
    except (TypeError, ValueError):
        raise ValidationError("Score must be a whole number")
    if score < 0 or score > max_score:
        raise ValidationError(f"Score must be between 0 and {max_score}")
    return score


def grade_submission(store, grader_id, submission_id, score, feedback=''):
    """
    Mark a submission graded and create its grade record.

    The two writes are independent: if the grade insert fails the submission
    stays graded and the caller reports the failure.

    Returns:
        (submission, grade)
    """
    submission = store.get_or_404(SUBMISSIONS, submission_id, "Submission")
    assignment = store.get_or_404(ASSIGNMENTS, submission.get('assignment_id'), "Assignment")
    max_score = assignment.get('max_score') or 100
    score = parse_score(score, max_score)
    stamp = now_iso()

    submission = store.update(SUBMISSIONS, submission_id, {
        "status": "graded",
        "score": score,
        "feedback": feedback,
        "graded_by": grader_id,
        "graded_at": stamp,
    }) or submission

    grade = store.create(GRADES, {
        "student_id": submission.get('student_id'),
        "course_id": assignment.get('course_id'),
        "assignment_id": assignment['id'],
        "assignment": assignment.get('title', ''),
        "score": score,
        "max_score": max_score,
        "percentage": calculate_percentage(score, max_score),
        "feedback": feedback,
        "graded_at": stamp,
    })
    logger.info("Submission %s graded %s/%s by %s", submission_id, score, max_score, grader_id)
    return submission, grade


def average_percentage(grades):
    """Rounded mean of score/max_score over grade records; 0 for none."""
    values = [(g.get('score') or 0) / g['max_score'] * 100 for g in grades if g.get('max_score')]
    if not values:
        return 0
    return int(sum(values) / len(values) + 0.5)
