# routes/investor_routes.py
from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required

from skyinvest.models import Business, Investment, ShareRequest
from skyinvest.services import share_service
from skyinvest.utils.auth import current_user_id, role_required
from skyinvest.utils.parsing import pick

investor_bp = Blueprint("investor", __name__)

investor_required = role_required("investor")


@investor_bp.get("/businesses")
@jwt_required()
@investor_required
def list_open_businesses():
    rows = (
        Business.query.filter_by(type="public", status="active")
        .filter(Business.remaining_shares > 0)
        .order_by(Business.created_at.desc())
        .all()
    )
    return jsonify([b.to_dict() for b in rows]), 200


@investor_bp.post("/businesses/<int:business_id>/request-shares")
@jwt_required()
@investor_required
def request_shares(business_id):
    data = request.get_json() or {}
    share_request = share_service.request_shares(
        business_id,
        current_user_id(),
        pick(data, "requested_shares", "requestedShares", "shares"),
        require_active=True,
    )
    return jsonify({"msg": "Share request submitted", "share_request": share_request.to_dict()}), 201


@investor_bp.post("/businesses/<int:business_id>/invest")
@jwt_required()
@investor_required
def invest(business_id):
    data = request.get_json() or {}
    investment = share_service.invest_directly(business_id, current_user_id(), data.get("amount"))
    return jsonify({"msg": "Investment request submitted", "investment": investment.to_dict()}), 201


@investor_bp.get("/share-requests")
@jwt_required()
@investor_required
def my_share_requests():
    rows = (
        ShareRequest.query.filter_by(investor_id=current_user_id())
        .order_by(ShareRequest.created_at.desc(), ShareRequest.id.desc())
        .all()
    )
    return jsonify([r.to_dict() for r in rows]), 200


@investor_bp.get("/investments")
@jwt_required()
@investor_required
def my_investments():
    rows = (
        Investment.query.filter_by(investor_id=current_user_id())
        .order_by(Investment.created_at.desc(), Investment.id.desc())
        .all()
    )
    total = sum(float(i.amount or 0) for i in rows if i.status == "approved")
    return jsonify({"investments": [i.to_dict() for i in rows], "total_invested": total}), 200
