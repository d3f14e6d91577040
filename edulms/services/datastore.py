"""
Data access glue for EduLMS.

Every collection lives in its own Supabase table and every row is handled as a
whole document (a plain dict keyed by `id`). Nothing here is transactional:
related writes happen one after another and the platform resolves concurrent
edits last-write-wins.
"""
import logging

from edulms.errors import DataStoreError, NotFound
from edulms.services import supabase_client
from edulms.utils import new_id, now_iso

logger = logging.getLogger(__name__)

USERS = 'users'
COURSES = 'courses'
ASSIGNMENTS = 'assignments'
SUBMISSIONS = 'submissions'
GRADES = 'grades'
MODULES = 'course_modules'
LESSONS = 'lessons'
ACTIVITY_LOGS = 'activity_logs'
SETTINGS = 'settings'
NOTIFICATION_LOG = 'notification_log'

DEFAULT_SYSTEM_SETTINGS = {
    "maintenance_mode": False,
    "email_notifications": True,
    "max_file_size": 10,
    "last_backup": None,
}

_OPS = {
    '==': 'eq',
    '>=': 'gte',
    '<=': 'lte',
    '>': 'gt',
    '<': 'lt',
}


class DataStore:
    """Whole-document reads and writes against the Supabase tables."""

    def __init__(self, client=None):
        self._client = client

    @property
    def db(self):
        if self._client is None:
            self._client = supabase_client.get_supabase()
        return self._client

    # ── generic document operations ─────────────────────────────

    def get(self, collection, doc_id):
        """Fetch one document by id, or None."""
        if not doc_id:
            return None
        try:
            result = self.db.table(collection).select('*').eq('id', doc_id).limit(1).execute()
        except Exception as e:
            logger.error("Error loading %s/%s: %s", collection, doc_id, e)
            raise DataStoreError(f"Failed to load {collection}") from e
        return result.data[0] if result.data else None

    def get_or_404(self, collection, doc_id, label=None):
        doc = self.get(collection, doc_id)
        if doc is None:
            raise NotFound(f"{label or collection.rstrip('s').capitalize()} not found")
        return doc

    def query(self, collection, filters=(), order_by=None, desc=False, limit=None):
        """
        Filtered query.

        Args:
            filters: iterable of (field, op, value); op is one of
                ==, >=, <=, >, <, array-contains
            order_by: field to sort on server-side
            desc: sort descending
            limit: maximum documents returned
        """
        try:
            q = self.db.table(collection).select('*')
            for field, op, value in filters:
                if op == 'array-contains':
                    q = q.contains(field, [value])
                elif op in _OPS:
                    q = getattr(q, _OPS[op])(field, value)
                else:
                    raise ValueError(f"Unsupported filter operator: {op}")
            if order_by:
                q = q.order(order_by, desc=desc)
            if limit:
                q = q.limit(limit)
            result = q.execute()
        except ValueError:
            raise
        except Exception as e:
            logger.error("Error querying %s %s: %s", collection, list(filters), e)
            raise DataStoreError(f"Failed to load {collection}") from e
        return result.data or []

    def all(self, collection):
        return self.query(collection)

    def create(self, collection, data):
        """Insert a new document with a generated id and created_at stamp."""
        doc = {"id": new_id(), "created_at": now_iso(), **data}
        try:
            result = self.db.table(collection).insert(doc).execute()
        except Exception as e:
            logger.error("Error creating %s document: %s", collection, e)
            raise DataStoreError(f"Failed to save {collection}") from e
        return result.data[0] if result.data else doc

    def set(self, collection, doc_id, data, merge=True):
        """Write a whole document. With merge, existing fields not in `data` survive."""
        doc = dict(data)
        if merge:
            existing = self.get(collection, doc_id) or {}
            doc = {**existing, **data}
        doc['id'] = doc_id
        try:
            result = self.db.table(collection).upsert(doc).execute()
        except Exception as e:
            logger.error("Error saving %s/%s: %s", collection, doc_id, e)
            raise DataStoreError(f"Failed to save {collection}") from e
        return result.data[0] if result.data else doc

    def update(self, collection, doc_id, fields):
        """Update named fields of an existing document."""
        try:
            result = self.db.table(collection).update(fields).eq('id', doc_id).execute()
        except Exception as e:
            logger.error("Error updating %s/%s: %s", collection, doc_id, e)
            raise DataStoreError(f"Failed to update {collection}") from e
        return result.data[0] if result.data else None

    def delete(self, collection, doc_id):
        try:
            self.db.table(collection).delete().eq('id', doc_id).execute()
        except Exception as e:
            logger.error("Error deleting %s/%s: %s", collection, doc_id, e)
            raise DataStoreError(f"Failed to delete {collection}") from e

    def get_many(self, collection, ids):
        """Lookup map {id: doc} for a set of ids, skipping missing documents."""
        found = {}
        for doc_id in set(i for i in ids if i):
            doc = self.get(collection, doc_id)
            if doc is not None:
                found[doc_id] = doc
        return found

    # ── users ───────────────────────────────────────────────────

    def load_user(self, user_id, touch=True):
        """Load a user document and stamp last_login. None if the document is missing."""
        user = self.get(USERS, user_id)
        if user is None:
            logger.info("User document not found: %s", user_id)
            return None
        if touch:
            stamp = now_iso()
            self.update(USERS, user_id, {"last_login": stamp})
            user['last_login'] = stamp
        return user

    def save_user(self, user_id, data):
        return self.set(USERS, user_id, data, merge=True)

    def enroll_course(self, user_id, course_id):
        """
        Add a course to the user's enrolled list.

        Returns (user, enrolled). Enrolling in a course already on the list is a
        no-op and returns enrolled=False. The course's `students` list is updated
        afterwards on a best-effort basis.
        """
        user = self.get_or_404(USERS, user_id, "User")
        course = self.get_or_404(COURSES, course_id, "Course")

        enrolled = list(user.get('enrolled_courses') or [])
        if course_id in enrolled:
            return user, False

        enrolled.append(course_id)
        user = self.update(USERS, user_id, {"enrolled_courses": enrolled}) or {**user, "enrolled_courses": enrolled}

        students = list(course.get('students') or [])
        if user_id not in students:
            students.append(user_id)
            try:
                self.update(COURSES, course_id, {"students": students})
            except DataStoreError:
                logger.warning("Enrolled %s in %s but could not update the course roster", user_id, course_id)

        self.log_activity(user_id, user.get('name', ''), 'course_enrolled', course.get('title', course_id))
        return user, True

    def unenroll_course(self, user_id, course_id):
        user = self.get_or_404(USERS, user_id, "User")
        enrolled = [c for c in (user.get('enrolled_courses') or []) if c != course_id]
        user = self.update(USERS, user_id, {"enrolled_courses": enrolled}) or {**user, "enrolled_courses": enrolled}

        course = self.get(COURSES, course_id)
        if course and user_id in (course.get('students') or []):
            self.update(COURSES, course_id, {"students": [s for s in course['students'] if s != user_id]})
        return user

    # ── activity log / system settings ──────────────────────────

    def log_activity(self, user_id, user_name, action, details=''):
        """Append an activity entry. Failures are logged and never interrupt the caller."""
        try:
            self.create(ACTIVITY_LOGS, {
                "user_id": user_id,
                "user_name": user_name,
                "action": action,
                "details": details,
                "timestamp": now_iso(),
            })
        except DataStoreError as e:
            logger.warning("Activity log error: %s", e)

    def recent_activity(self, limit=50):
        return self.query(ACTIVITY_LOGS, order_by='timestamp', desc=True, limit=limit)

    def get_system_settings(self):
        doc = self.get(SETTINGS, 'system')
        if doc is None:
            return dict(DEFAULT_SYSTEM_SETTINGS)
        return {**DEFAULT_SYSTEM_SETTINGS, **doc}

    def save_system_settings(self, data):
        return self.set(SETTINGS, 'system', data, merge=True)


def get_store():
    """DataStore bound to the shared service client."""
    return DataStore()
