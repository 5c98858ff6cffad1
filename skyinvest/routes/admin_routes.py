# routes/admin_routes.py
from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import jwt_required

from skyinvest.models import BUSINESS_STATUSES, BUSINESS_TYPES, Business, Investment
from skyinvest.services import category_service, share_service
from skyinvest.utils.auth import admin_required
from skyinvest.utils.parsing import parse_choice, pick, safe_int

admin_bp = Blueprint("admin", __name__)


# ───────────────────────── Businesses ─────────────────────────

@admin_bp.get("/businesses")
@jwt_required()
@admin_required
def list_businesses():
    q = Business.query
    if request.args.get("type"):
        q = q.filter_by(type=parse_choice(request.args["type"], "type", BUSINESS_TYPES))
    if request.args.get("status"):
        q = q.filter_by(status=parse_choice(request.args["status"], "status", BUSINESS_STATUSES))
    rows = q.order_by(Business.created_at.desc(), Business.id.desc()).all()
    return jsonify([b.to_dict() for b in rows]), 200


@admin_bp.post("/businesses/public")
@jwt_required()
@admin_required
def create_public_business():
    data = request.get_json() or {}
    business = share_service.create_public_business(
        data, entrepreneur_id=safe_int(pick(data, "entrepreneur_id", "entrepreneurId"))
    )
    current_app.logger.info("Admin published business %s", business.id)
    return jsonify({"msg": "Public business created", "business": business.to_dict()}), 201


@admin_bp.put("/businesses/public/<int:business_id>")
@jwt_required()
@admin_required
def update_public_business(business_id):
    business = share_service.update_public_business(business_id, request.get_json() or {})
    return jsonify({"msg": "Business updated", "business": business.to_dict()}), 200


@admin_bp.post("/businesses/<int:business_id>/approve")
@jwt_required()
@admin_required
def approve_submission(business_id):
    public = share_service.approve_submission(business_id, request.get_json() or {})
    return jsonify({"msg": "Business approved and published", "business": public.to_dict()}), 200


@admin_bp.post("/businesses/<int:business_id>/reject")
@jwt_required()
@admin_required
def reject_submission(business_id):
    data = request.get_json(silent=True) or {}
    submission = share_service.reject_submission(business_id, data.get("reason"))
    return jsonify({"msg": "Business rejected", "business": submission.to_dict()}), 200


# ───────────────────────── Investments ─────────────────────────

@admin_bp.get("/investments")
@jwt_required()
@admin_required
def list_investments():
    q = Investment.query
    business_id = safe_int(request.args.get("business_id"))
    if business_id:
        q = q.filter_by(business_id=business_id)
    rows = q.order_by(Investment.created_at.desc(), Investment.id.desc()).all()
    return jsonify([i.to_dict() for i in rows]), 200


@admin_bp.patch("/investments/<int:investment_id>/status")
@jwt_required()
@admin_required
def set_investment_status(investment_id):
    data = request.get_json() or {}
    investment = share_service.set_investment_status(investment_id, data.get("status"))
    return jsonify({"msg": "Investment updated", "investment": investment.to_dict()}), 200


# ───────────────────────── Categories ─────────────────────────

@admin_bp.get("/categories")
@jwt_required()
@admin_required
def list_categories():
    return jsonify([c.to_dict() for c in category_service.list_categories()]), 200


@admin_bp.post("/categories")
@jwt_required()
@admin_required
def create_category():
    category = category_service.create_category(request.get_json() or {})
    return jsonify({"msg": "Category created", "category": category.to_dict()}), 201


@admin_bp.put("/categories/<int:category_id>")
@jwt_required()
@admin_required
def update_category(category_id):
    category = category_service.update_category(category_id, request.get_json() or {})
    return jsonify({"msg": "Category updated", "category": category.to_dict()}), 200


@admin_bp.delete("/categories/<int:category_id>")
@jwt_required()
@admin_required
def delete_category(category_id):
    category_service.delete_category(category_id)
    return jsonify({"msg": "Category deleted"}), 200


# ───────────────────────── Dashboard ─────────────────────────

@admin_bp.get("/stats")
@jwt_required()
@admin_required
def stats():
    return jsonify(share_service.platform_stats()), 200
