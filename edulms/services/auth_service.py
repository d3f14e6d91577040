"""
Authentication glue around Supabase Auth.
Handles sign-up/sign-in/sign-out, OAuth redirects and the profile document
that is created on a user's first login.
"""
import logging

from edulms.errors import AuthError
from edulms.services import supabase_client
from edulms.services.datastore import USERS, DataStore
from edulms.utils import is_valid_email, now_iso

logger = logging.getLogger(__name__)

ERROR_MESSAGES = {
    'invalid_credentials': 'Incorrect email or password',
    'user_not_found': 'No account found with this email address',
    'user_already_exists': 'Email already in use',
    'email_exists': 'Email already in use',
    'weak_password': 'Password is too weak',
    'email_address_invalid': 'Invalid email address',
    'user_banned': 'This account has been disabled',
    'over_request_rate_limit': 'Too many login attempts. Try again later',
    'email_not_confirmed': 'Please confirm your email address first',
    'provider_disabled': 'This operation is not enabled',
    'bad_oauth_callback': 'Sign in was cancelled',
}

MIN_PASSWORD_LENGTH = 6
ROLES = ('student', 'instructor', 'admin')
SIGNUP_ROLES = ('student', 'instructor')


def error_message(error):
    """Friendly message for a platform auth error (code string or exception)."""
    code = error if isinstance(error, str) else getattr(error, 'code', None)
    return ERROR_MESSAGES.get(code, 'An error occurred. Please try again.')


def validate_login(email, password):
    if not email or not password:
        raise AuthError('Please enter both email and password')
    if not is_valid_email(email):
        raise AuthError('Invalid email address')


def validate_registration(email, password, confirm_password):
    if not email or not password or not confirm_password:
        raise AuthError('Please fill in all fields')
    if password != confirm_password:
        raise AuthError('Passwords do not match')
    if len(password) < MIN_PASSWORD_LENGTH:
        raise AuthError(f'Password must be at least {MIN_PASSWORD_LENGTH} characters')
    if not is_valid_email(email):
        raise AuthError('Invalid email address')


def create_user_document(store, user_id, email, data=None):
    """Create (or merge into) the profile document for an auth user."""
    data = data or {}
    role = data.get('role') if data.get('role') in ROLES else 'student'
    first_name = data.get('first_name', '')
    last_name = data.get('last_name', '')
    name = data.get('name') or f"{first_name} {last_name}".strip() or email.split('@')[0]
    stamp = now_iso()

    doc = {
        "name": name,
        "first_name": first_name or name.split()[0],
        "last_name": last_name,
        "email": email,
        "avatar": data.get('avatar'),
        "role": role,
        "status": "active",
        "major": data.get('major', ''),
        "created_at": stamp,
        "last_login": stamp,
        "submissions": 0,
        "study_hours": 0,
        "settings": {"email_notifications": True, "push_notifications": True, "dark_mode": False},
    }
    if role == 'student':
        doc.update({"enrolled_courses": [], "completed_courses": []})
    elif role == 'instructor':
        doc.update({"department": data.get('major', ''), "created_courses": []})

    user = store.set(USERS, user_id, doc, merge=True)
    logger.info("User document created for %s", email)
    return user


def ensure_user_document(store, auth_user, data=None):
    """Return the profile document, creating it on first login."""
    user = store.get(USERS, auth_user.id)
    if user is not None:
        return user, False
    meta = getattr(auth_user, 'user_metadata', None) or {}
    seed = {"name": meta.get('full_name') or meta.get('name'), "avatar": meta.get('avatar_url')}
    seed.update(data or {})
    return create_user_document(store, auth_user.id, auth_user.email, seed), True


def pkce_verifier(client):
    # supabase-auth keeps the verifier in the client's storage under "<storage key>-code-verifier"
    auth = client.auth
    return auth._storage.get_item(f"{auth._storage_key}-code-verifier")


class AuthService:
    """User-facing auth operations; each call uses a fresh anon client."""

    def __init__(self, store=None):
        self.store = store or DataStore()

    def _client(self):
        return supabase_client.get_auth_client()

    def sign_in(self, email, password):
        """Email/password login. Returns (profile, session)."""
        validate_login(email, password)
        try:
            res = self._client().auth.sign_in_with_password({"email": email, "password": password})
        except Exception as e:
            logger.error("Login error for %s: %s", email, e)
            raise AuthError(error_message(e)) from e

        user, _ = ensure_user_document(self.store, res.user)
        user = self.store.load_user(res.user.id) or user
        if user.get('status') == 'suspended':
            raise AuthError(ERROR_MESSAGES['user_banned'])
        self.store.log_activity(res.user.id, user.get('name', ''), 'user_login', email)
        logger.info("Login successful: %s", email)
        return user, res.session

    def sign_up(self, email, password, confirm_password, profile=None):
        """Register and create the profile document. Returns (profile, session or None)."""
        validate_registration(email, password, confirm_password)
        profile = dict(profile or {})
        if profile.get('role') not in SIGNUP_ROLES:
            profile['role'] = 'student'
        try:
            res = self._client().auth.sign_up({
                "email": email,
                "password": password,
                "options": {"data": {"name": profile.get('name', '')}},
            })
        except Exception as e:
            logger.error("Registration error for %s: %s", email, e)
            raise AuthError(error_message(e)) from e

        if res.user is None:
            raise AuthError('An error occurred. Please try again.')
        user = create_user_document(self.store, res.user.id, email, profile)
        logger.info("Registration successful: %s", email)
        return user, res.session

    def oauth_url(self, redirect_to, provider='google'):
        """
        Start an OAuth sign-in.

        Returns:
            (url, code_verifier): the provider URL for the browser, and the
            PKCE verifier the callback must send back. The verifier lives in
            this request's client only, so the caller keeps it in the session.
        """
        client = self._client()
        try:
            res = client.auth.sign_in_with_oauth({
                "provider": provider,
                "options": {"redirect_to": redirect_to, "query_params": {"prompt": "select_account"}},
            })
        except Exception as e:
            logger.error("OAuth sign-in error: %s", e)
            raise AuthError(error_message(e)) from e
        return res.url, pkce_verifier(client)

    def exchange_code(self, code, code_verifier=None):
        """OAuth callback: trade the auth code for a session, creating the profile on first login."""
        if not code or not code_verifier:
            raise AuthError(ERROR_MESSAGES['bad_oauth_callback'])
        try:
            res = self._client().auth.exchange_code_for_session(
                {"auth_code": code, "code_verifier": code_verifier})
        except Exception as e:
            logger.error("OAuth callback error: %s", e)
            raise AuthError(error_message(e)) from e

        user, created = ensure_user_document(self.store, res.user, {"role": "student"})
        if created:
            logger.info("New OAuth user created: %s", res.user.email)
        self.store.log_activity(res.user.id, user.get('name', ''), 'user_login', res.user.email)
        return user, res.session

    def sign_out(self, user_id=None, user_name=''):
        try:
            self._client().auth.sign_out()
        except Exception as e:
            logger.warning("Logout error: %s", e)
        if user_id:
            self.store.log_activity(user_id, user_name, 'user_logout')

    def reauthenticate(self, email, password):
        try:
            self._client().auth.sign_in_with_password({"email": email, "password": password})
        except Exception as e:
            raise AuthError('Current password is incorrect') from e

    def change_password(self, user_id, email, current_password, new_password):
        if not new_password or len(new_password) < MIN_PASSWORD_LENGTH:
            raise AuthError(f'Password must be at least {MIN_PASSWORD_LENGTH} characters')
        self.reauthenticate(email, current_password)
        try:
            supabase_client.get_supabase().auth.admin.update_user_by_id(user_id, {"password": new_password})
        except Exception as e:
            logger.error("Error changing password for %s: %s", user_id, e)
            raise AuthError(error_message(e)) from e

    def delete_account(self, user_id, email, password):
        """Re-authenticate, then remove the profile document and the auth user."""
        self.reauthenticate(email, password)
        self.store.delete(USERS, user_id)
        try:
            supabase_client.get_supabase().auth.admin.delete_user(user_id)
        except Exception as e:
            logger.error("Error deleting auth user %s: %s", user_id, e)
            raise AuthError(error_message(e)) from e
        logger.info("Account deleted: %s", email)
