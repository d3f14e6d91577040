"""
Shared test fixtures for EduLMS.
Replaces the Supabase client with an in-memory fake and captures outgoing mail.
Zero network calls - all data from the seeded fixture tables.
"""
import copy
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import jwt
import pytest

from edulms.config import config
from edulms.services import supabase_client
from edulms.services.datastore import DataStore

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)
JWT_SECRET = 'test-jwt-secret-with-enough-length-for-hs256'
WEBHOOK_SECRET = 'test-webhook-secret'


def iso(dt):
    return dt.isoformat()


# ══════════════════════════════════════════════════════════════
# FAKE SUPABASE
# ══════════════════════════════════════════════════════════════

class FakeQuery:
    """Chainable table query mirroring the postgrest builder calls the datastore makes."""

    def __init__(self, db, table):
        self.db = db
        self.table = table
        self.filters = []
        self.order_field = None
        self.order_desc = False
        self.row_limit = None
        self.action = 'select'
        self.payload = None

    # filters
    def select(self, *_):
        return self

    def _filter(self, field, test):
        self.filters.append(lambda doc: field in doc and doc[field] is not None and test(doc[field]))
        return self

    def eq(self, field, value):
        return self._filter(field, lambda v: v == value)

    def gte(self, field, value):
        return self._filter(field, lambda v: v >= value)

    def lte(self, field, value):
        return self._filter(field, lambda v: v <= value)

    def gt(self, field, value):
        return self._filter(field, lambda v: v > value)

    def lt(self, field, value):
        return self._filter(field, lambda v: v < value)

    def contains(self, field, values):
        return self._filter(field, lambda v: all(x in v for x in values))

    def order(self, field, desc=False):
        self.order_field, self.order_desc = field, desc
        return self

    def limit(self, n):
        self.row_limit = n
        return self

    # writes
    def insert(self, doc):
        self.action, self.payload = 'insert', doc
        return self

    def upsert(self, doc):
        self.action, self.payload = 'upsert', doc
        return self

    def update(self, fields):
        self.action, self.payload = 'update', fields
        return self

    def delete(self):
        self.action = 'delete'
        return self

    def _matches(self):
        rows = self.db.tables.setdefault(self.table, {})
        return [doc for doc in rows.values() if all(f(doc) for f in self.filters)]

    def execute(self):
        if self.table in self.db.failing:
            raise RuntimeError(f"{self.table} unavailable")
        rows = self.db.tables.setdefault(self.table, {})

        if self.action == 'insert':
            rows[self.payload['id']] = copy.deepcopy(self.payload)
            return SimpleNamespace(data=[copy.deepcopy(self.payload)])
        if self.action == 'upsert':
            rows[self.payload['id']] = copy.deepcopy(self.payload)
            return SimpleNamespace(data=[copy.deepcopy(self.payload)])
        if self.action == 'update':
            changed = []
            for doc in self._matches():
                doc.update(copy.deepcopy(self.payload))
                changed.append(copy.deepcopy(doc))
            return SimpleNamespace(data=changed)
        if self.action == 'delete':
            gone = self._matches()
            for doc in gone:
                del rows[doc['id']]
            return SimpleNamespace(data=gone)

        found = self._matches()
        if self.order_field:
            found.sort(key=lambda d: (d.get(self.order_field) is None, d.get(self.order_field) or 0),
                       reverse=self.order_desc)
        if self.row_limit:
            found = found[:self.row_limit]
        return SimpleNamespace(data=copy.deepcopy(found))


class FakeAuthError(Exception):
    def __init__(self, code):
        super().__init__(code)
        self.code = code


class FakeKeyStorage:
    def __init__(self):
        self.items = {}

    def get_item(self, key):
        return self.items.get(key)

    def set_item(self, key, value):
        self.items[key] = value

    def remove_item(self, key):
        self.items.pop(key, None)


class FakeAuth:
    VERIFIER = "pkce-verifier-1"

    def __init__(self):
        self.accounts = {}   # email -> {"id", "password"}
        self._storage_key = "sb-test-auth-token"
        self._storage = FakeKeyStorage()
        self.signed_out = 0
        self.admin = SimpleNamespace(update_user_by_id=self._update_user, delete_user=self._delete_user)
        self.deleted = []

    def add_account(self, user_id, email, password):
        self.accounts[email] = {"id": user_id, "password": password}

    def _session(self, user_id, email, metadata=None):
        user = SimpleNamespace(id=user_id, email=email, user_metadata=metadata or {})
        token = jwt.encode({"sub": user_id, "email": email, "aud": "authenticated"}, JWT_SECRET, algorithm='HS256')
        refresh = f"refresh-{user_id}"
        return SimpleNamespace(user=user, session=SimpleNamespace(access_token=token, refresh_token=refresh))

    def sign_in_with_password(self, credentials):
        account = self.accounts.get(credentials['email'])
        if account is None or account['password'] != credentials['password']:
            raise FakeAuthError('invalid_credentials')
        return self._session(account['id'], credentials['email'])

    def sign_up(self, credentials):
        if credentials['email'] in self.accounts:
            raise FakeAuthError('user_already_exists')
        user_id = f"auth-{len(self.accounts) + 1}"
        self.add_account(user_id, credentials['email'], credentials['password'])
        return self._session(user_id, credentials['email'])

    def sign_in_with_oauth(self, options):
        self._storage.set_item(f"{self._storage_key}-code-verifier", self.VERIFIER)
        return SimpleNamespace(url=f"https://accounts.example.com/{options['provider']}?redirect="
                                   f"{options['options']['redirect_to']}")

    def exchange_code_for_session(self, params):
        # a callback request runs on a fresh client, so only an explicit verifier counts
        if params['auth_code'] != 'good-code' or params.get('code_verifier') != self.VERIFIER:
            raise FakeAuthError('bad_oauth_callback')
        return self._session('oauth-user', 'oauth@example.com', {"full_name": "Olive Auth"})

    def refresh_session(self, refresh_token):
        if not refresh_token.startswith("refresh-"):
            raise FakeAuthError('refresh_token_not_found')
        user_id = refresh_token[len("refresh-"):]
        email = next((e for e, a in self.accounts.items() if a["id"] == user_id), "")
        return self._session(user_id, email)

    def sign_out(self):
        self.signed_out += 1

    def _update_user(self, user_id, attributes):
        for account in self.accounts.values():
            if account['id'] == user_id:
                account['password'] = attributes['password']

    def _delete_user(self, user_id):
        self.deleted.append(user_id)


class FakeBucket:
    def __init__(self, files, name):
        self.files = files
        self.name = name

    def upload(self, path, data, options=None):
        self.files[path] = (data, (options or {}).get('content-type'))

    def get_public_url(self, path):
        return f"https://storage.example.com/{self.name}/{path}"


class FakeStorage:
    def __init__(self):
        self.files = {}

    def from_(self, bucket):
        return FakeBucket(self.files, bucket)


class FakeSupabase:
    def __init__(self):
        self.tables = {}
        self.failing = set()
        self.auth = FakeAuth()
        self.storage = FakeStorage()

    def table(self, name):
        return FakeQuery(self, name)

    def seed(self, table, *docs):
        rows = self.tables.setdefault(table, {})
        for doc in docs:
            rows[doc['id']] = copy.deepcopy(doc)

    def rows(self, table):
        return list(self.tables.get(table, {}).values())


class FakeEmailer:
    def __init__(self, succeed=True):
        self.sent = []
        self.succeed = succeed

    def send_html(self, to_email, subject, html, reply_to=None):
        self.sent.append({"to": to_email, "subject": subject, "html": html})
        return self.succeed


# ══════════════════════════════════════════════════════════════
# FIXTURES
# ══════════════════════════════════════════════════════════════

def seed_lms(db):
    """Two courses, a student in each state, one instructor and one admin."""
    settings = {"email_notifications": True, "push_notifications": True, "dark_mode": False}
    db.seed('users',
            {"id": "stu1", "name": "Alice Student", "first_name": "Alice", "last_name": "Student",
             "email": "alice@example.com", "role": "student", "status": "active",
             "enrolled_courses": ["c1"], "completed_courses": [], "settings": dict(settings),
             "submissions": 1, "study_hours": 12, "last_login": iso(NOW - timedelta(hours=2)), "streak": 4,
             "created_at": iso(NOW - timedelta(days=30))},
            {"id": "stu2", "name": "Bob Learner", "first_name": "Bob", "last_name": "Learner",
             "email": "bob@example.com", "role": "student", "status": "active",
             "enrolled_courses": ["c1", "c2"], "completed_courses": ["c0"],
             "settings": {**settings, "email_notifications": False},
             "submissions": 1, "created_at": iso(NOW - timedelta(days=20))},
            {"id": "ins1", "name": "Irene Teacher", "first_name": "Irene", "email": "irene@example.com",
             "role": "instructor", "status": "active", "settings": dict(settings)},
            {"id": "adm1", "name": "Ada Admin", "first_name": "Ada", "email": "ada@example.com",
             "role": "admin", "status": "active", "settings": dict(settings)})
    db.seed('courses',
            {"id": "c1", "title": "Python Basics", "code": "PY101", "description": "Learn Python from scratch",
             "category": "Programming", "level": "Beginner", "duration": 20, "instructor": "ins1",
             "instructor_name": "Irene Teacher", "students": ["stu1", "stu2"], "status": "active"},
            {"id": "c2", "title": "Data Science", "code": "DS200", "description": "Pandas and statistics",
             "category": "Data", "level": "Intermediate", "duration": 30, "instructor": "ins9",
             "instructor_name": "Guest", "students": ["stu2"], "status": "active"})
    db.seed('assignments',
            {"id": "a1", "course_id": "c1", "title": "Variables Quiz", "description": "Short quiz",
             "due_date": iso(NOW + timedelta(hours=12)), "max_score": 100, "submission_type": "file"},
            {"id": "a2", "course_id": "c1", "title": "Loops Essay", "description": "Explain for loops",
             "due_date": iso(NOW + timedelta(days=5)), "max_score": 50, "submission_type": "text"},
            {"id": "a3", "course_id": "c2", "title": "Statistics Project", "description": "Regression",
             "due_date": iso(NOW - timedelta(days=2)), "max_score": 100, "submission_type": "url"})
    db.seed('submissions',
            {"id": "s1", "assignment_id": "a2", "course_id": "c1", "student_id": "stu1", "status": "submitted",
             "score": None, "content": "A for loop repeats", "submitted_at": iso(NOW - timedelta(days=1))},
            {"id": "s2", "assignment_id": "a1", "course_id": "c1", "student_id": "stu2", "status": "graded",
             "score": 85, "feedback": "Good", "submitted_at": iso(NOW - timedelta(days=2))})
    db.seed('grades',
            {"id": "g1", "student_id": "stu2", "course_id": "c1", "assignment_id": "a1",
             "assignment": "Variables Quiz", "score": 85, "max_score": 100, "percentage": 85,
             "feedback": "Good", "graded_at": iso(NOW - timedelta(days=1))})
    db.seed('course_modules',
            {"id": "m1", "course_id": "c1", "name": "Getting Started", "description": "Setup", "order": 0},
            {"id": "m2", "course_id": "c1", "name": "Control Flow", "description": "Loops", "order": 1})
    db.seed('lessons',
            {"id": "l1", "module_id": "m1", "course_id": "c1", "title": "Installing Python", "type": "video",
             "description": "Install the interpreter", "order": 0, "completed": True},
            {"id": "l2", "module_id": "m2", "course_id": "c1", "title": "For loops", "type": "text",
             "description": "Iterating over lists", "order": 0, "completed": False})
    db.auth.add_account("stu1", "alice@example.com", "secret123")
    db.auth.add_account("ins1", "irene@example.com", "secret123")


@pytest.fixture
def fake_db(monkeypatch):
    """Empty fake Supabase wired in for both the service and auth clients."""
    db = FakeSupabase()
    monkeypatch.setattr(supabase_client, 'get_supabase', lambda: db)
    monkeypatch.setattr(supabase_client, 'get_auth_client', lambda: db)
    return db


@pytest.fixture
def db(fake_db):
    """Fake Supabase seeded with the standard LMS data."""
    seed_lms(fake_db)
    return fake_db


@pytest.fixture
def store(db):
    return DataStore(db)


@pytest.fixture
def emailer(monkeypatch):
    fake = FakeEmailer()
    import edulms.services.notifications as notifications
    monkeypatch.setattr(notifications, 'get_emailer', lambda: fake)
    return fake


@pytest.fixture
def secrets(monkeypatch):
    monkeypatch.setattr(config, 'supabase_jwt_secret', JWT_SECRET)
    monkeypatch.setattr(config, 'webhook_secret', WEBHOOK_SECRET)


@pytest.fixture
def app(db, secrets):
    from edulms.app import create_app
    return create_app({"TESTING": True, "SECRET_KEY": "test"})


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def login(client):
    """Put a user id into the session: login('stu1')."""
    def _login(user_id):
        with client.session_transaction() as sess:
            sess['user_id'] = user_id
        return client
    return _login


def bearer(user_id):
    token = jwt.encode({"sub": user_id, "aud": "authenticated"}, JWT_SECRET, algorithm='HS256')
    return {"Authorization": f"Bearer {token}"}
