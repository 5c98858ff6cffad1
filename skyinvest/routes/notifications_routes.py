# routes/notifications_routes.py
from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required

from skyinvest.services import notifications
from skyinvest.utils.auth import current_user_id
from skyinvest.utils.parsing import safe_int

notifications_bp = Blueprint("notifications", __name__)


@notifications_bp.get("")
@jwt_required()
def list_notifications():
    unread_only = (request.args.get("unread") or "").lower() in ("1", "true", "yes")
    limit = min(max(safe_int(request.args.get("limit")) or 50, 1), 200)
    return jsonify(notifications.list_for_user(current_user_id(), unread_only, limit)), 200


@notifications_bp.put("/mark-all-read")
@jwt_required()
def mark_all_read():
    updated = notifications.mark_all_read(current_user_id())
    return jsonify({"msg": "All notifications marked as read", "updated": updated}), 200


@notifications_bp.put("/<int:notification_id>/read")
@jwt_required()
def mark_read(notification_id):
    row = notifications.mark_read(current_user_id(), notification_id)
    if not row:
        return jsonify({"msg": "Notification not found"}), 404
    return jsonify({"msg": "Notification marked as read", "notification": row.to_dict()}), 200
