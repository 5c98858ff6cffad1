# routes/payroll_routes.py
from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required

from skyinvest.services import payroll_service
from skyinvest.utils.auth import admin_required, current_user_id
from skyinvest.utils.parsing import pick

employees_bp = Blueprint("employees", __name__)
payroll_bp = Blueprint("payroll", __name__)


# ───────────────────────── Employees ─────────────────────────

@employees_bp.post("")
@jwt_required()
@admin_required
def create_employee():
    employee = payroll_service.create_employee(request.get_json() or {})
    return jsonify({"msg": "Employee created", "employee": employee.to_dict()}), 201


@employees_bp.get("")
@jwt_required()
@admin_required
def list_employees():
    rows = payroll_service.list_employees(request.args.get("status"), request.args.get("department"))
    return jsonify([e.to_dict() for e in rows]), 200


@employees_bp.put("/<int:employee_id>")
@jwt_required()
@admin_required
def update_employee(employee_id):
    employee = payroll_service.update_employee(employee_id, request.get_json() or {})
    return jsonify({"msg": "Employee updated", "employee": employee.to_dict()}), 200


@employees_bp.delete("/<int:employee_id>")
@jwt_required()
@admin_required
def delete_employee(employee_id):
    payroll_service.delete_employee(employee_id)
    return jsonify({"msg": "Employee deleted"}), 200


@employees_bp.get("/attendance/<int:employee_id>")
@jwt_required()
@admin_required
def list_attendance(employee_id):
    rows = payroll_service.list_attendance(
        employee_id,
        pick(request.args, "start_date", "startDate"),
        pick(request.args, "end_date", "endDate"),
    )
    return jsonify([a.to_dict() for a in rows]), 200


@employees_bp.post("/attendance/<int:employee_id>")
@jwt_required()
@admin_required
def record_attendance(employee_id):
    record = payroll_service.record_attendance(employee_id, request.get_json() or {})
    return jsonify({"msg": "Attendance recorded", "attendance": record.to_dict()}), 201


@employees_bp.get("/performance/<int:employee_id>")
@jwt_required()
@admin_required
def list_performance(employee_id):
    rows = payroll_service.list_performance_reviews(employee_id)
    return jsonify([r.to_dict() for r in rows]), 200


@employees_bp.post("/performance/<int:employee_id>")
@jwt_required()
@admin_required
def add_performance(employee_id):
    review = payroll_service.add_performance_review(
        employee_id, request.get_json() or {}, reviewer_id=current_user_id()
    )
    return jsonify({"msg": "Performance review added", "review": review.to_dict()}), 201


# ───────────────────────── Payroll ─────────────────────────

@payroll_bp.post("")
@jwt_required()
@admin_required
def create_payroll():
    payroll = payroll_service.create_payroll(request.get_json() or {})
    return jsonify({"msg": "Payroll created", "payroll": payroll.to_dict()}), 201


@payroll_bp.get("")
@jwt_required()
@admin_required
def list_payroll():
    rows = payroll_service.list_payroll(request.args.get("employee_id"), request.args.get("status"))
    return jsonify([p.to_dict() for p in rows]), 200


@payroll_bp.put("/<int:payroll_id>")
@jwt_required()
@admin_required
def update_payroll(payroll_id):
    payroll = payroll_service.update_payroll(payroll_id, request.get_json() or {})
    return jsonify({"msg": "Payroll updated", "payroll": payroll.to_dict()}), 200


@payroll_bp.patch("/<int:payroll_id>/paid")
@jwt_required()
@admin_required
def mark_paid(payroll_id):
    data = request.get_json(silent=True) or {}
    payroll = payroll_service.mark_payroll_paid(
        payroll_id,
        payment_date=pick(data, "payment_date", "paymentDate"),
        payment_method=pick(data, "payment_method", "paymentMethod"),
    )
    return jsonify({"msg": "Payroll marked as paid", "payroll": payroll.to_dict()}), 200
