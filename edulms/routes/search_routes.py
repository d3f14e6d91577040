"""
Search routes for EduLMS: the results page and a JSON endpoint.
"""
import logging

from flask import Blueprint, jsonify, render_template, request

from edulms.auth import login_required
from edulms.services.datastore import get_store
from edulms.services.search import CATEGORIES, search

search_bp = Blueprint('search', __name__)
logger = logging.getLogger(__name__)


def _filters(args):
    # a category is searched unless explicitly switched off (?users=0)
    return {c: args.get(c, '1') not in ('0', 'false', 'off') for c in CATEGORIES}


@search_bp.route('/search')
@login_required
def search_page():
    filters = _filters(request.args)
    results = search(get_store(), request.args.get('q', ''), filters)
    return render_template('search.html', results=results, filters=filters)


@search_bp.route('/api/search')
def api_search():
    return jsonify(search(get_store(), request.args.get('q', ''), _filters(request.args)))
