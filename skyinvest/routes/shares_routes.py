# routes/shares_routes.py
from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import jwt_required

from skyinvest.models import ShareRequest
from skyinvest.services import share_service
from skyinvest.utils.auth import admin_required, current_user_id, is_admin, role_required
from skyinvest.utils.parsing import pick, safe_int

shares_bp = Blueprint("shares", __name__)


# ✅ Investor (or an admin on their behalf) asks for shares of a public business
@shares_bp.post("/request")
@jwt_required()
@role_required("investor", "admin")
def request_shares():
    data = request.get_json() or {}
    investor_id = safe_int(pick(data, "investor_id", "investorId")) if is_admin() else None
    share_request = share_service.request_shares(
        safe_int(pick(data, "business_id", "businessId")),
        investor_id or current_user_id(),
        pick(data, "requested_shares", "requestedShares"),
    )
    return jsonify({"msg": "Share request submitted", "share_request": share_request.to_dict()}), 201


@shares_bp.get("/pending")
@jwt_required()
@admin_required
def pending_requests():
    rows = (
        ShareRequest.query.filter_by(status="pending")
        .order_by(ShareRequest.created_at.asc(), ShareRequest.id.asc())
        .all()
    )
    return jsonify([r.to_dict() for r in rows]), 200


@shares_bp.put("/<int:request_id>/approve")
@jwt_required()
@admin_required
def approve(request_id):
    data = request.get_json(silent=True) or {}
    share_request, investment = share_service.approve_share_request(
        request_id, pick(data, "approved_shares", "approvedShares")
    )
    current_app.logger.info("Admin approved share request %s", request_id)
    return jsonify({
        "msg": "Share request approved",
        "share_request": share_request.to_dict(),
        "investment": investment.to_dict(),
    }), 200


@shares_bp.put("/<int:request_id>/reject")
@jwt_required()
@admin_required
def reject(request_id):
    data = request.get_json(silent=True) or {}
    share_request = share_service.reject_share_request(request_id, data.get("reason"))
    return jsonify({"msg": "Share request rejected", "share_request": share_request.to_dict()}), 200
