"""
EduLMS Services
===============

Business logic behind the route blueprints.

Services:
- datastore / supabase_client / storage: Supabase tables, auth and file storage
- auth_service: sign-in, sign-up, OAuth and profile documents
- courses / submissions / grading / gradebook: the learning workflow
- dashboards / profile / search: page aggregators
- email_service / notifications: outgoing mail and event handlers
"""

# Services are imported directly when needed to avoid circular imports
# Example: from edulms.services.gradebook import load_rows

__all__ = [
    'auth_service',
    'courses',
    'dashboards',
    'datastore',
    'email_service',
    'gradebook',
    'grading',
    'notifications',
    'profile',
    'search',
    'storage',
    'submissions',
    'supabase_client',
]
