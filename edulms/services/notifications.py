"""
Notification handlers: welcome, assignment reminder, grade posted and
enrollment confirmation emails, plus the weekly user statistics job.

Triggers arrive as Supabase database webhooks (see routes/webhook_routes.py)
or from cron through the Flask CLI (see cli.py). Every send is recorded in
the notification_log collection so a repeated trigger for the same event is
skipped.
"""
import logging
from datetime import timedelta

from jinja2 import Environment, PackageLoader, select_autoescape

from edulms.config import config
from edulms.errors import DataStoreError
from edulms.services.datastore import (
    ASSIGNMENTS, COURSES, GRADES, NOTIFICATION_LOG, SUBMISSIONS, USERS,
)
from edulms.services.email_service import get_emailer
from edulms.services.grading import average_percentage
from edulms.utils import (
    calculate_percentage, capitalize, days_until, format_date, now_iso, parse_timestamp, short_date, utcnow,
)

logger = logging.getLogger(__name__)

_env = Environment(
    loader=PackageLoader('edulms', 'templates/emails'),
    autoescape=select_autoescape(['html']),
)


def render_email(template, **context):
    context.setdefault('app_url', config.app_url)
    return _env.get_template(template).render(**context)


# ══════════════════════════════════════════════════════════════
# DEDUPLICATION / OPT-OUT
# ══════════════════════════════════════════════════════════════

def _already_sent(store, key):
    return store.get(NOTIFICATION_LOG, key) is not None


def _mark_sent(store, key, recipient):
    try:
        store.set(NOTIFICATION_LOG, key, {"recipient": recipient, "sent_at": now_iso()}, merge=False)
    except DataStoreError as e:
        logger.warning("Could not record notification %s: %s", key, e)


def _wants_email(store, user):
    if not user or not user.get('email'):
        return False
    if (user.get('settings') or {}).get('email_notifications') is False:
        return False
    return bool(store.get_system_settings().get('email_notifications', True))


def _deliver(store, emailer, key, user, subject, html):
    """Send once per key. Returns True when an email went out."""
    if _already_sent(store, key):
        logger.info("Notification %s already sent, skipping", key)
        return False
    if not emailer.send_html(user['email'], subject, html):
        return False
    _mark_sent(store, key, user['email'])
    return True


# ══════════════════════════════════════════════════════════════
# EVENT HANDLERS
# ══════════════════════════════════════════════════════════════

def send_welcome_email(store, user, emailer=None):
    """New user document created. Failures are logged and reported as False."""
    emailer = emailer or get_emailer()
    try:
        if not _wants_email(store, user):
            return False
        html = render_email(
            'welcome.html',
            first_name=user.get('first_name') or 'Student',
            email=user['email'],
            role=capitalize(user.get('role') or 'Student'),
            created=short_date(user.get('created_at') or now_iso()),
        )
        subject = "Welcome to EduLMS - Your Learning Journey Starts Here!"
        return _deliver(store, emailer, f"welcome:{user['id']}", user, subject, html)
    except Exception as e:
        logger.error("Error sending welcome email: %s", e)
        return False


def notify_grade_posted(store, grade, emailer=None):
    """New grade record. Errors propagate so the caller can report them."""
    emailer = emailer or get_emailer()
    student = store.get(USERS, grade.get('student_id'))
    if not _wants_email(store, student):
        return False
    course = store.get(COURSES, grade.get('course_id')) or {}

    html = render_email(
        'grade_posted.html',
        first_name=student.get('first_name') or 'Student',
        assignment=grade.get('assignment', ''),
        course_title=course.get('title', ''),
        score=grade.get('score'),
        max_score=grade.get('max_score'),
        percentage=calculate_percentage(grade.get('score'), grade.get('max_score')),
        feedback=grade.get('feedback'),
    )
    subject = f'Your grade for "{grade.get("assignment", "")}" has been posted!'
    sent = _deliver(store, emailer, f"grade:{grade['id']}", student, subject, html)
    if sent:
        logger.info("Grade notification sent to %s", student['email'])
    return sent


def newly_enrolled_course(before, after):
    """First course id present in `after` but not in `before`."""
    old = set((before or {}).get('enrolled_courses') or [])
    for course_id in (after or {}).get('enrolled_courses') or []:
        if course_id not in old:
            return course_id
    return None


def confirm_course_enrollment(store, before, after, emailer=None):
    """User document updated; email the first newly added course. Failures return False."""
    emailer = emailer or get_emailer()
    try:
        course_id = newly_enrolled_course(before, after)
        if not course_id or not _wants_email(store, after):
            return False
        course = store.get(COURSES, course_id)
        if course is None:
            logger.warning("Enrollment confirmation skipped, course %s not found", course_id)
            return False
        html = render_email(
            'enrollment.html',
            first_name=after.get('first_name') or 'Student',
            course=course,
        )
        subject = f'You\'re now enrolled in "{course.get("title", "")}"!'
        sent = _deliver(store, emailer, f"enroll:{after['id']}:{course_id}", after, subject, html)
        if sent:
            logger.info("Enrollment confirmation sent to %s", after['email'])
        return sent
    except Exception as e:
        logger.error("Error sending enrollment confirmation: %s", e)
        return False


def handle_db_event(store, payload, emailer=None):
    """
    Dispatch a Supabase database webhook payload
    ({"type": INSERT|UPDATE|DELETE, "table", "record", "old_record"}).
    Returns the name of the handler that ran, or None.
    """
    event = (payload.get('type') or '').upper()
    table = payload.get('table')
    record = payload.get('record') or {}

    if table == USERS and event == 'INSERT':
        send_welcome_email(store, record, emailer)
        return 'welcome'
    if table == GRADES and event == 'INSERT':
        notify_grade_posted(store, record, emailer)
        return 'grade_posted'
    if table == USERS and event == 'UPDATE':
        confirm_course_enrollment(store, payload.get('old_record'), record, emailer)
        return 'enrollment'
    return None


# ══════════════════════════════════════════════════════════════
# SCHEDULED JOBS
# ══════════════════════════════════════════════════════════════

def send_assignment_reminders(store, emailer=None, now=None):
    """
    Daily: remind enrolled students about assignments due within the reminder
    window that they have not submitted (or whose submission is still pending).
    """
    emailer = emailer or get_emailer()
    now = now or utcnow()
    window_end = now + timedelta(hours=config.reminder_window_hours)

    assignments = store.query(ASSIGNMENTS, [
        ('due_date', '<=', window_end.isoformat()),
        ('due_date', '>=', now.isoformat()),
    ])

    sent = 0
    for assignment in assignments:
        course = store.get(COURSES, assignment.get('course_id')) or {}
        students = store.query(USERS, [('enrolled_courses', 'array-contains', assignment.get('course_id'))])
        submissions = {
            s.get('student_id'): s
            for s in store.query(SUBMISSIONS, [('assignment_id', '==', assignment['id'])])
        }
        due = parse_timestamp(assignment['due_date'])
        days = days_until(due, now)

        for student in students:
            submission = submissions.get(student['id'])
            if submission and submission.get('status') != 'pending':
                continue
            if not _wants_email(store, student):
                continue
            html = render_email(
                'reminder.html',
                assignment=assignment,
                course_title=course.get('title', ''),
                due=format_date(due),
                days=days,
            )
            subject = f'Reminder: "{assignment.get("title", "")}" is due in {days} day(s)'
            if _deliver(store, emailer, f"reminder:{assignment['id']}:{student['id']}", student, subject, html):
                sent += 1

    logger.info("Sent %d assignment reminder emails", sent)
    return {"emails_sent": sent}


def update_user_statistics(store):
    """Weekly: cache enrollment count and grade average on each user document."""
    updated = 0
    for user in store.all(USERS):
        stats = {
            "stats_updated_at": now_iso(),
            "total_courses_enrolled": len(user.get('enrolled_courses') or []),
        }
        grades = store.query(GRADES, [('student_id', '==', user['id'])])
        if grades:
            stats['average_grade'] = average_percentage(grades)
        store.update(USERS, user['id'], stats)
        updated += 1

    logger.info("Updated statistics for %d users", updated)
    return {"users_updated": updated}
