# routes/expenses_routes.py
from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import jwt_required

from skyinvest.services import expense_service
from skyinvest.services.query_filters import ExpenseQuery
from skyinvest.services.recurrence import mark_expense_paid
from skyinvest.utils.auth import admin_required, current_user_id
from skyinvest.utils.parsing import parse_bool, pick

expenses_bp = Blueprint("expenses", __name__)


def _options():
    return ExpenseQuery.from_args(request.args, current_app.config.get("DEFAULT_PAGE_SIZE", 10))


@expenses_bp.post("")
@jwt_required()
@admin_required
def create_expense():
    expense = expense_service.create_expense(request.get_json() or {}, created_by=current_user_id())
    return jsonify({"msg": "Expense created", "expense": expense.to_dict()}), 201


@expenses_bp.get("")
@jwt_required()
@admin_required
def list_expenses():
    rows, pagination = expense_service.list_expenses(_options())
    return jsonify({"expenses": [e.to_dict() for e in rows], "pagination": pagination}), 200


@expenses_bp.get("/statistics")
@jwt_required()
@admin_required
def statistics():
    return jsonify(expense_service.statistics(_options())), 200


@expenses_bp.get("/<int:expense_id>")
@jwt_required()
@admin_required
def get_expense(expense_id):
    return jsonify(expense_service.get_expense(expense_id).to_dict()), 200


@expenses_bp.put("/<int:expense_id>")
@jwt_required()
@admin_required
def update_expense(expense_id):
    expense = expense_service.update_expense(expense_id, request.get_json() or {})
    return jsonify({"msg": "Expense updated", "expense": expense.to_dict()}), 200


@expenses_bp.delete("/<int:expense_id>")
@jwt_required()
@admin_required
def delete_expense(expense_id):
    expense_service.delete_expense(expense_id)
    return jsonify({"msg": "Expense deleted"}), 200


@expenses_bp.patch("/<int:expense_id>/paid")
@jwt_required()
@admin_required
def mark_paid(expense_id):
    data = request.get_json(silent=True) or {}
    expense, successor = mark_expense_paid(
        expense_id,
        paid_date=pick(data, "paid_date", "paidDate"),
        payment_method=pick(data, "payment_method", "paymentMethod"),
    )
    return jsonify({
        "msg": "Expense marked as paid",
        "expense": expense.to_dict(),
        "next_expense": successor.to_dict() if successor else None,
    }), 200


@expenses_bp.patch("/<int:expense_id>/toggle-active")
@jwt_required()
@admin_required
def toggle_active(expense_id):
    data = request.get_json(silent=True) or {}
    raw = pick(data, "is_active", "isActive")
    is_active = parse_bool(raw, "is_active") if raw is not None else None
    expense = expense_service.toggle_active(expense_id, is_active)
    state = "resumed" if expense.is_active else "paused"
    return jsonify({"msg": f"Recursive expense {state}", "expense": expense.to_dict()}), 200


@expenses_bp.patch("/<int:expense_id>/stop")
@jwt_required()
@admin_required
def stop(expense_id):
    expense = expense_service.stop_expense(expense_id)
    return jsonify({"msg": "Expense stopped", "expense": expense.to_dict()}), 200
