# routes/invoices_routes.py
from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import jwt_required

from skyinvest.services import invoice_service
from skyinvest.services.query_filters import InvoiceQuery
from skyinvest.services.recurrence import mark_invoice_paid
from skyinvest.utils.auth import admin_required
from skyinvest.utils.parsing import pick

invoices_bp = Blueprint("invoices", __name__)


@invoices_bp.post("")
@jwt_required()
@admin_required
def create_invoice():
    invoice = invoice_service.create_invoice(request.get_json() or {})
    return jsonify({"msg": "Invoice created", "invoice": invoice.to_dict()}), 201


@invoices_bp.get("")
@jwt_required()
@admin_required
def list_invoices():
    options = InvoiceQuery.from_args(request.args, current_app.config.get("DEFAULT_PAGE_SIZE", 10))
    rows, pagination = invoice_service.list_invoices(options)
    return jsonify({"invoices": [i.to_dict() for i in rows], "pagination": pagination}), 200


@invoices_bp.get("/<int:invoice_id>")
@jwt_required()
@admin_required
def get_invoice(invoice_id):
    return jsonify(invoice_service.get_invoice(invoice_id).to_dict()), 200


@invoices_bp.put("/<int:invoice_id>")
@jwt_required()
@admin_required
def update_invoice(invoice_id):
    invoice = invoice_service.update_invoice(invoice_id, request.get_json() or {})
    return jsonify({"msg": "Invoice updated", "invoice": invoice.to_dict()}), 200


@invoices_bp.delete("/<int:invoice_id>")
@jwt_required()
@admin_required
def delete_invoice(invoice_id):
    invoice_service.delete_invoice(invoice_id)
    return jsonify({"msg": "Invoice deleted"}), 200


@invoices_bp.patch("/<int:invoice_id>/paid")
@jwt_required()
@admin_required
def mark_paid(invoice_id):
    data = request.get_json(silent=True) or {}
    invoice = mark_invoice_paid(
        invoice_id,
        payment_date=pick(data, "payment_date", "paymentDate"),
        payment_method=pick(data, "payment_method", "paymentMethod"),
    )
    return jsonify({"msg": "Invoice marked as paid", "invoice": invoice.to_dict()}), 200
