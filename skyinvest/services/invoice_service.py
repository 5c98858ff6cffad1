# services/invoice_service.py
from __future__ import annotations

from skyinvest.errors import NotFoundError, ValidationError
from skyinvest.extensions import db
from skyinvest.models import INVOICE_FREQUENCIES, Invoice
from skyinvest.services.query_filters import InvoiceQuery
from skyinvest.utils.parsing import parse_amount, parse_bool, parse_choice, parse_datetime, pick

REQUIRED = ("vendor_name", "amount", "due_date", "category", "description")


def get_invoice(invoice_id) -> Invoice:
    invoice = db.session.get(Invoice, invoice_id) if invoice_id is not None else None
    if invoice is None:
        raise NotFoundError("Invoice not found")
    return invoice


def _recurrence(data: dict, invoice: Invoice) -> None:
    recurring = data.get("recurring", invoice.recurring)
    invoice.recurring = parse_bool(recurring, "recurring")
    if not invoice.recurring:
        invoice.frequency = None
        invoice.next_due_date = None
        return
    frequency = data.get("frequency") or invoice.frequency
    if not frequency:
        raise ValidationError("frequency is required for recurring invoices")
    invoice.frequency = parse_choice(frequency, "frequency", INVOICE_FREQUENCIES)


def create_invoice(data: dict) -> Invoice:
    missing = [k for k in REQUIRED if data.get(k) in (None, "")]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    invoice = Invoice(
        vendor_name=str(data["vendor_name"]).strip(),
        amount=parse_amount(data["amount"], "amount"),
        currency=(data.get("currency") or "USD").strip().upper(),
        category=str(data["category"]).strip(),
        description=str(data["description"]).strip(),
        due_date=parse_datetime(data["due_date"], "due_date"),
        status="pending",
        notes=(data.get("notes") or "").strip() or None,
    )
    _recurrence(data, invoice)
    db.session.add(invoice)
    db.session.commit()
    return invoice


def update_invoice(invoice_id, data: dict) -> Invoice:
    """Field edits only; paying an invoice goes through ``mark_invoice_paid``."""
    invoice = get_invoice(invoice_id)

    for key in ("vendor_name", "category", "description"):
        if data.get(key):
            setattr(invoice, key, str(data[key]).strip())
    if "amount" in data:
        invoice.amount = parse_amount(data["amount"], "amount")
    if data.get("currency"):
        invoice.currency = str(data["currency"]).strip().upper()
    if pick(data, "due_date", "dueDate"):
        invoice.due_date = parse_datetime(pick(data, "due_date", "dueDate"), "due_date")
    if "notes" in data:
        invoice.notes = (data.get("notes") or "").strip() or None
    if "recurring" in data or "frequency" in data:
        _recurrence(data, invoice)

    db.session.commit()
    return invoice


def delete_invoice(invoice_id) -> None:
    invoice = get_invoice(invoice_id)
    db.session.delete(invoice)
    db.session.commit()


def list_invoices(options: InvoiceQuery):
    query = options.build(Invoice.query).order_by(Invoice.due_date.asc(), Invoice.id.asc())
    return options.paginate(query)
