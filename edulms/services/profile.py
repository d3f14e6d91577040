"""
Profile page glue: statistics, enrolled course cards, achievements and settings.
"""
import logging

from edulms.errors import ValidationError
from edulms.services import storage
from edulms.services.dashboards import course_assignments
from edulms.services.datastore import COURSES, GRADES, USERS
from edulms.services.grading import average_percentage
from edulms.utils import parse_timestamp, utcnow

logger = logging.getLogger(__name__)

SETTING_KEYS = ('email_notifications', 'push_notifications', 'dark_mode')

ACHIEVEMENTS = {
    'first-course': ('First Step', 'Enroll in your first course', 'fa-book', 'bg-blue-500'),
    'perfect-score': ('Perfect Score', 'Get 100% on an assignment', 'fa-star', 'bg-yellow-500'),
    'honor-roll': ('Honor Roll', 'Maintain a grade average above 90%', 'fa-trophy', 'bg-purple-500'),
    'good-grades': ('Good Student', 'Maintain a grade average above 80%', 'fa-graduation-cap', 'bg-green-500'),
    'course-explorer': ('Course Explorer', 'Enroll in 3 or more courses', 'fa-compass', 'bg-orange-500'),
}


def profile_statistics(store, user, now=None):
    enrolled = user.get('enrolled_courses') or []
    grades = store.query(GRADES, [('student_id', '==', user['id'])])

    # streak survives only if the user was active today
    last_login = parse_timestamp(user.get('last_login'))
    now = now or utcnow()
    active_today = last_login is not None and last_login.date() == now.date()
    return {
        "enrolled_courses": len(enrolled),
        "assignments": len(course_assignments(store, enrolled)),
        "average_grade": average_percentage(grades),
        "streak": (user.get('streak') or 1) if active_today else 0,
    }


def enrolled_course_cards(store, user):
    cards = []
    for course_id in user.get('enrolled_courses') or []:
        course = store.get(COURSES, course_id)
        if course is None:
            continue
        grades = store.query(GRADES, [('student_id', '==', user['id']), ('course_id', '==', course_id)])
        cards.append({**course, "grade": average_percentage(grades)})
    return cards


def achievements(user, grades):
    earned = []
    enrolled = len(user.get('enrolled_courses') or [])
    if enrolled > 0:
        earned.append('first-course')
    if any(g.get('percentage') == 100 for g in grades):
        earned.append('perfect-score')
    if grades:
        avg = sum(g.get('percentage') or 0 for g in grades) / len(grades)
        if avg > 90:
            earned.append('honor-roll')
        if avg > 80:
            earned.append('good-grades')
    if enrolled >= 3:
        earned.append('course-explorer')

    return [
        {"id": key, "name": name, "description": desc, "icon": icon, "color": color}
        for key in earned
        for name, desc, icon, color in [ACHIEVEMENTS[key]]
    ]


def save_profile(store, user_id, form):
    first_name = (form.get('first_name') or '').strip()
    last_name = (form.get('last_name') or '').strip()
    if not first_name:
        raise ValidationError("First name is required")
    updates = {
        "first_name": first_name,
        "last_name": last_name,
        "name": f"{first_name} {last_name}".strip(),
        "institution": form.get('institution', ''),
        "bio": form.get('bio', ''),
    }
    return store.save_user(user_id, updates)


def update_setting(store, user, name, value):
    if name not in SETTING_KEYS:
        raise ValidationError(f"Unknown setting: {name}")
    settings = dict(user.get('settings') or {})
    settings[name] = bool(value)
    store.update(USERS, user['id'], {"settings": settings})
    return settings


def upload_avatar(store, user_id, content_type, data):
    storage.validate_avatar(content_type, len(data))
    url = storage.upload(storage.avatar_path(user_id), data, content_type)
    store.update(USERS, user_id, {"avatar": url})
    logger.info("Avatar uploaded for %s", user_id)
    return url


def profile_page(store, user):
    grades = store.query(GRADES, [('student_id', '==', user['id'])])
    return {
        "user": user,
        "stats": profile_statistics(store, user),
        "courses": enrolled_course_cards(store, user),
        "achievements": achievements(user, grades),
        "settings": {key: (user.get('settings') or {}).get(key, key != 'dark_mode') for key in SETTING_KEYS},
    }
