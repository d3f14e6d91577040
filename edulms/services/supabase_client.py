"""
Supabase client access.

The service-role client is created lazily and shared for table and storage work.
Auth calls that act *as a user* (sign-in, sign-up, re-authentication) get a fresh
anon-key client each time, so a user session never leaks into the shared client.
"""
from supabase import create_client, Client

from edulms.config import config

_supabase: Client = None


def get_supabase() -> Client:
    """Get or create the service-role Supabase client."""
    global _supabase
    if _supabase is None:
        url = config.supabase_url
        key = config.supabase_key
        if not url or not key:
            raise Exception("Supabase credentials not configured. Check SUPABASE_URL and SUPABASE_SERVICE_KEY in .env")
        _supabase = create_client(url, key)
    return _supabase


def get_auth_client() -> Client:
    """New anon-key client for user-scoped auth calls."""
    url = config.supabase_url
    key = config.supabase_anon_key
    if not url or not key:
        raise Exception("Supabase credentials not configured. Check SUPABASE_URL and SUPABASE_ANON_KEY in .env")
    return create_client(url, key)
