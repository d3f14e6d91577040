"""
Supabase Database Webhook receiver.

Configure webhooks on the users (INSERT, UPDATE) and grades (INSERT) tables
to POST to /api/webhooks/db with the header `X-Webhook-Secret: <WEBHOOK_SECRET>`.
"""
import hmac
import logging

from flask import Blueprint, jsonify, request

from edulms.config import config
from edulms.services.datastore import get_store
from edulms.services.notifications import handle_db_event

webhook_bp = Blueprint('webhooks', __name__)
logger = logging.getLogger(__name__)


def _authorized():
    secret = config.webhook_secret
    if not secret:
        logger.error("WEBHOOK_SECRET not configured, rejecting webhook")
        return False
    return hmac.compare_digest(request.headers.get('X-Webhook-Secret', ''), secret)


@webhook_bp.route('/api/webhooks/db', methods=['POST'])
def database_event():
    if not _authorized():
        return jsonify({"error": "Unauthorized"}), 401

    payload = request.get_json(silent=True)
    if not payload or not payload.get('table'):
        return jsonify({"error": "Invalid payload"}), 400

    try:
        handled = handle_db_event(get_store(), payload)
    except Exception as e:
        logger.error("Error handling %s on %s: %s", payload.get('type'), payload.get('table'), e)
        return jsonify({"error": "Internal server error", "details": str(e)}), 500

    return jsonify({"success": True, "handled": handled})
