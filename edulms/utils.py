"""
Common helpers: timestamps, date formatting, validation, grade math.
"""
import math
import re
import uuid
from datetime import datetime, timezone

EMAIL_RE = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')

LETTER_RANGES = {
    'A': (90, 100),
    'B': (80, 89),
    'C': (70, 79),
    'D': (60, 69),
    'F': (0, 59),
}


def new_id():
    return uuid.uuid4().hex


def utcnow():
    return datetime.now(timezone.utc)


def now_iso():
    """Server timestamp as stored in documents."""
    return utcnow().isoformat()


def parse_timestamp(value):
    """Parse an ISO string / datetime into an aware UTC datetime. Returns None if unparseable."""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        try:
            dt = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def format_date(value, with_time=True):
    """'Jan 05, 2025, 03:30 PM' style date used across pages and exports."""
    dt = parse_timestamp(value)
    if dt is None:
        return ''
    if with_time:
        return dt.strftime('%b %d, %Y, %I:%M %p')
    return dt.strftime('%b %d, %Y')


def short_date(value):
    """MM/DD/YYYY"""
    dt = parse_timestamp(value)
    return dt.strftime('%m/%d/%Y') if dt else ''


def days_until(value, now=None):
    """Whole days until `value`, rounded up. 0 when no date."""
    dt = parse_timestamp(value)
    if dt is None:
        return 0
    now = now or utcnow()
    return math.ceil((dt - now).total_seconds() / 86400)


def is_valid_email(email):
    return bool(email) and bool(EMAIL_RE.match(email))


def calculate_percentage(score, max_points):
    """Rounded percentage; 0 when score or max is missing/zero."""
    if not score or not max_points:
        return 0
    return round_half_up(float(score) / float(max_points) * 100)


def round_half_up(value):
    """Round .5 away from zero for non-negative values (85.5 -> 86)."""
    return int(math.floor(value + 0.5))


def letter_grade(percentage):
    if percentage >= 90:
        return 'A'
    if percentage >= 80:
        return 'B'
    if percentage >= 70:
        return 'C'
    if percentage >= 60:
        return 'D'
    return 'F'


def capitalize(text):
    if not text:
        return ''
    return text[0].upper() + text[1:]


def safe_int(value, default=0):
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


def display_name(user):
    """Best display name from a user document."""
    if not user:
        return 'Unknown'
    name = user.get('name')
    if name:
        return name
    full = f"{user.get('first_name', '')} {user.get('last_name', '')}".strip()
    return full or user.get('email') or 'Unknown'
