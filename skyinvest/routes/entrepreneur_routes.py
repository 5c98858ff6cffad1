# routes/entrepreneur_routes.py
from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required

from skyinvest.models import Business
from skyinvest.services import category_service, share_service
from skyinvest.utils.auth import current_user_id, role_required

entrepreneur_bp = Blueprint("entrepreneur", __name__)


@entrepreneur_bp.post("/businesses")
@jwt_required()
@role_required("entrepreneur")
def submit_business():
    submission = share_service.submit_business(current_user_id(), request.get_json() or {})
    return jsonify({"msg": "Business submitted for review", "business": submission.to_dict()}), 201


@entrepreneur_bp.get("/businesses")
@jwt_required()
@role_required("entrepreneur")
def my_businesses():
    # submissions and the public listings published from them
    rows = (
        Business.query.filter_by(entrepreneur_id=current_user_id())
        .order_by(Business.created_at.desc(), Business.id.desc())
        .all()
    )
    return jsonify([b.to_dict() for b in rows]), 200


@entrepreneur_bp.get("/categories")
def list_categories():
    # public: the submission form needs it before login
    return jsonify([c.to_dict() for c in category_service.list_categories()]), 200
