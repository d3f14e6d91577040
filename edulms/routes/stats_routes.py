"""
Aggregation endpoints: per-user dashboard stats and course details.
Public JSON API (no auth), CORS-enabled at the app level.
"""
import logging

from flask import Blueprint, jsonify, request

from edulms.services.dashboards import user_stats
from edulms.services.datastore import ASSIGNMENTS, COURSES, USERS, get_store

stats_bp = Blueprint('stats', __name__)
logger = logging.getLogger(__name__)


@stats_bp.route('/api/health')
def health():
    return jsonify({"status": "ok"})


@stats_bp.route('/api/user-stats')
def get_user_stats():
    uid = request.args.get('uid')
    if not uid:
        return jsonify({"error": "Missing UID parameter"}), 400

    try:
        store = get_store()
        user = store.get(USERS, uid)
        if user is None:
            return jsonify({"error": "User not found"}), 404
        return jsonify(user_stats(store, user))
    except Exception as e:
        logger.error("Error getting user stats: %s", e)
        return jsonify({"error": "Internal server error", "details": str(e)}), 500


@stats_bp.route('/api/course-details')
def get_course_details():
    course_id = request.args.get('courseId')
    if not course_id:
        return jsonify({"error": "Missing courseId parameter"}), 400

    try:
        store = get_store()
        course = store.get(COURSES, course_id)
        if course is None:
            return jsonify({"error": "Course not found"}), 404
        assignments = store.query(ASSIGNMENTS, [('course_id', '==', course_id)])
        return jsonify({
            **course,
            "assignment_count": len(assignments),
            "enrollment_count": len(course.get('students') or []),
        })
    except Exception as e:
        logger.error("Error getting course details: %s", e)
        return jsonify({"error": "Internal server error", "details": str(e)}), 500
