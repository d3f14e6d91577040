"""
Global search across courses, assignments, users and course materials.

Each collection is scanned independently with a case-insensitive "contains"
match and capped at a fixed result count. No indexing or ranking.
"""
import concurrent.futures
import logging

from edulms.config import config
from edulms.services.datastore import ASSIGNMENTS, COURSES, LESSONS, USERS

logger = logging.getLogger(__name__)

CATEGORIES = ('courses', 'assignments', 'users', 'materials')


def _contains(doc, fields, needle):
    return any(needle in str(doc.get(f) or '').lower() for f in fields)


def search_courses(store, query, limit):
    needle = query.lower()
    courses = store.all(COURSES)
    matches = [c for c in courses if _contains(c, ('title',), needle)]
    if not matches:
        matches = [c for c in courses if _contains(c, ('description', 'code'), needle)]
    return matches[:limit]


def search_assignments(store, query, limit):
    needle = query.lower()
    assignments = store.all(ASSIGNMENTS)
    matches = [a for a in assignments if _contains(a, ('title',), needle)]
    if not matches:
        matches = [a for a in assignments if _contains(a, ('description',), needle)]
    matches = matches[:limit]

    courses = store.get_many(COURSES, [a.get('course_id') for a in matches])
    for assignment in matches:
        course = courses.get(assignment.get('course_id'))
        if course:
            assignment['course_name'] = course.get('title', '')
    return matches


def search_users(store, query, limit):
    needle = query.lower()
    return [u for u in store.all(USERS) if _contains(u, ('name', 'email'), needle)][:limit]


def search_materials(store, query, limit):
    needle = query.lower()
    return [l for l in store.all(LESSONS) if _contains(l, ('title', 'description'), needle)][:limit]


SEARCHERS = {
    'courses': search_courses,
    'assignments': search_assignments,
    'users': search_users,
    'materials': search_materials,
}


def search(store, query, filters=None, limit=None):
    """
    Run every enabled category search concurrently.

    Args:
        query: free text; blank returns no results
        filters: {category: bool}; missing categories default to enabled

    Returns:
        {"query", "courses", "assignments", "users", "materials", "has_results"}
    """
    query = (query or '').strip()
    limit = limit or config.search_limit
    filters = filters or {}
    results = {category: [] for category in CATEGORIES}
    results['query'] = query

    if not query:
        results['has_results'] = False
        return results

    enabled = [c for c in CATEGORIES if filters.get(c, True)]
    with concurrent.futures.ThreadPoolExecutor(max_workers=len(CATEGORIES)) as executor:
        futures = {executor.submit(SEARCHERS[c], store, query, limit): c for c in enabled}
        for future in concurrent.futures.as_completed(futures):
            category = futures[future]
            try:
                results[category] = future.result()
            except Exception as e:
                logger.error("Error searching %s: %s", category, e)
                results[category] = []

    results['has_results'] = any(results[c] for c in CATEGORIES)
    return results
