"""
Dashboard aggregators for students, instructors and admins.
Each runs a handful of filtered queries and computes simple counts and averages.
"""
import logging

from edulms.errors import NotFound, ValidationError
from edulms.services.courses import instructor_courses
from edulms.services.datastore import ASSIGNMENTS, COURSES, GRADES, SUBMISSIONS, USERS
from edulms.services.grading import average_percentage
from edulms.utils import (
    days_until, display_name, format_date, is_valid_email, now_iso, parse_timestamp, safe_int, utcnow,
)

logger = logging.getLogger(__name__)

PENDING_REVIEW = ('submitted', 'pending', 'late')
USER_STATUSES = ('active', 'suspended', 'inactive')


# ══════════════════════════════════════════════════════════════
# STUDENT
# ══════════════════════════════════════════════════════════════

def course_assignments(store, course_ids):
    assignments = []
    for course_id in course_ids:
        assignments.extend(store.query(ASSIGNMENTS, [('course_id', '==', course_id)]))
    return assignments


def user_stats(store, user):
    """
    Counts behind the student dashboard and the /api/user-stats endpoint.

    A graded submission counts as submitted; anything else, including a
    missing submission, counts as pending.
    """
    enrolled = user.get('enrolled_courses') or []
    grades = store.query(GRADES, [('student_id', '==', user['id'])])
    submissions = {s.get('assignment_id'): s for s in store.query(SUBMISSIONS, [('student_id', '==', user['id'])])}

    pending = submitted = 0
    for assignment in course_assignments(store, enrolled):
        submission = submissions.get(assignment['id'])
        if submission and submission.get('status') == 'graded':
            submitted += 1
        else:
            pending += 1

    return {
        "active_courses": len(enrolled),
        "completed_courses": len(user.get('completed_courses') or []),
        "pending_assignments": pending,
        "submitted_assignments": submitted,
        "average_grade": average_percentage(grades),
    }


def student_stats(store, user):
    stats = user_stats(store, user)
    stats['study_hours'] = user.get('study_hours') or 0
    return stats


def upcoming_deadlines(store, user, limit=5, now=None):
    """Unsubmitted assignments due from now on, soonest first."""
    now = now or utcnow()
    submitted = {
        s.get('assignment_id')
        for s in store.query(SUBMISSIONS, [('student_id', '==', user['id'])])
        if s.get('status') != 'pending'
    }
    upcoming = []
    for assignment in course_assignments(store, user.get('enrolled_courses') or []):
        due = parse_timestamp(assignment.get('due_date'))
        if due is None or due < now or assignment['id'] in submitted:
            continue
        upcoming.append({
            **assignment,
            "days_until": days_until(due, now),
            "formatted_date": format_date(due),
        })
    upcoming.sort(key=lambda a: parse_timestamp(a['due_date']))
    return upcoming[:limit]


def student_dashboard(store, user, now=None):
    courses = store.get_many(COURSES, user.get('enrolled_courses') or [])
    return {
        "user": user,
        "stats": student_stats(store, user),
        "courses": [courses[c] for c in (user.get('enrolled_courses') or []) if c in courses],
        "deadlines": upcoming_deadlines(store, user, now=now),
    }


# ══════════════════════════════════════════════════════════════
# INSTRUCTOR
# ══════════════════════════════════════════════════════════════

def instructor_overview(store, instructor):
    courses = instructor_courses(store, instructor['id'])
    course_ids = [c['id'] for c in courses]
    assignments = course_assignments(store, course_ids)
    assignment_titles = {a['id']: a.get('title', '') for a in assignments}

    pending = []
    for course_id in course_ids:
        for submission in store.query(SUBMISSIONS, [('course_id', '==', course_id)]):
            if submission.get('status') in PENDING_REVIEW:
                pending.append(submission)
    students_by_id = store.get_many(USERS, [s.get('student_id') for s in pending])
    for submission in pending:
        submission['student_name'] = display_name(students_by_id.get(submission.get('student_id')))
        submission['assignment_title'] = assignment_titles.get(submission.get('assignment_id'), 'Unknown')

    students = []
    all_grades = []
    for course in courses:
        course_grades = store.query(GRADES, [('course_id', '==', course['id'])])
        all_grades.extend(course_grades)
        enrolled = store.query(USERS, [
            ('enrolled_courses', 'array-contains', course['id']),
            ('role', '==', 'student'),
        ])
        for student in enrolled:
            own = [g for g in course_grades if g.get('student_id') == student['id']]
            students.append({
                "student_id": student['id'],
                "name": display_name(student),
                "email": student.get('email', ''),
                "avatar": student.get('avatar'),
                "course_id": course['id'],
                "course_name": course.get('title', ''),
                "avg_grade": average_percentage(own),
            })

    return {
        "courses": courses,
        "assignments": assignments,
        "pending_submissions": pending,
        "students": students,
        "stats": {
            "total_courses": len(courses),
            "total_students": sum(len(c.get('students') or []) for c in courses),
            "pending_submissions": len(pending),
            "average_grade": average_percentage(all_grades),
        },
    }


def create_assignment(store, instructor_id, data):
    course_id = data.get('course_id')
    title = (data.get('title') or '').strip()
    if not course_id or not title or not data.get('due_date'):
        raise ValidationError("Course, title and due date are required")
    course = store.get(COURSES, course_id)
    if course is None:
        raise NotFound("Course not found")
    if course.get('instructor') != instructor_id:
        raise ValidationError("You can only add assignments to your own courses")

    due = parse_timestamp(data['due_date'])
    if due is None:
        raise ValidationError("Invalid due date")
    max_score = safe_int(data.get('max_score'), default=100)
    if max_score <= 0:
        raise ValidationError("Max score must be greater than 0")

    assignment = store.create(ASSIGNMENTS, {
        "course_id": course_id,
        "title": title,
        "description": data.get('description', ''),
        "due_date": due.isoformat(),
        "max_score": max_score,
        "submission_type": data.get('submission_type') if data.get('submission_type') in ('file', 'text', 'url') else 'file',
        "created_by": instructor_id,
    })
    logger.info("Assignment created: %s", assignment['id'])
    return assignment


# ══════════════════════════════════════════════════════════════
# ADMIN
# ══════════════════════════════════════════════════════════════

def admin_overview(store):
    users = store.all(USERS)
    courses = store.all(COURSES)
    return {
        "users": users,
        "courses": courses,
        "logs": store.recent_activity(50),
        "settings": store.get_system_settings(),
        "stats": {
            "total_users": len(users),
            "students": sum(1 for u in users if u.get('role') == 'student'),
            "instructors": sum(1 for u in users if u.get('role') == 'instructor'),
            "active_courses": len(courses),
        },
    }


def save_user(store, user_id, data):
    """Admin edit of a user's name, email, role and status."""
    name = (data.get('name') or '').strip()
    email = (data.get('email') or '').strip()
    if not name or not email:
        raise ValidationError("Please fill in all fields")
    if not is_valid_email(email):
        raise ValidationError("Invalid email address")
    role = data.get('role') if data.get('role') in ('student', 'instructor', 'admin') else 'student'
    status = data.get('status') if data.get('status') in USER_STATUSES else 'active'
    store.get_or_404(USERS, user_id, "User")
    return store.set(USERS, user_id, {"name": name, "email": email, "role": role, "status": status}, merge=True)


def delete_user(store, user_id):
    store.get_or_404(USERS, user_id, "User")
    store.delete(USERS, user_id)
    logger.info("User deleted: %s", user_id)


def save_settings(store, data):
    settings = {
        "maintenance_mode": bool(data.get('maintenance_mode')),
        "email_notifications": bool(data.get('email_notifications')),
        "max_file_size": safe_int(data.get('max_file_size'), default=10) or 10,
    }
    return store.save_system_settings(settings)


def perform_backup(store):
    """Record a backup timestamp in the system settings."""
    return store.save_system_settings({"last_backup": now_iso()})
