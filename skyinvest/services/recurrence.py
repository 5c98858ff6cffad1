# services/recurrence.py
"""
Recurring obligations: next-occurrence dates, the successor rule for recursive
expenses, and the periodic pass that flips overdue items.

Both the explicit "mark paid" path and the periodic sweep create successors
through ``ensure_successor``, keyed by (origin id, next due date) and backed by
the ``uq_expense_origin_due`` unique constraint, so repeated or racing passes
cannot produce two successors for the same period.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta

from dateutil.relativedelta import relativedelta
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from skyinvest.errors import NotFoundError, StateError
from skyinvest.extensions import db
from skyinvest.models import PAYMENT_METHODS, Expense, Invoice
from skyinvest.utils.parsing import parse_choice, parse_datetime

logger = logging.getLogger(__name__)

# calendar steps; anything unrecognised falls back to one month
_CALENDAR_STEPS = {
    "month": relativedelta(months=1),
    "quarter": relativedelta(months=3),
    "half": relativedelta(months=6),
    "year": relativedelta(years=1),
}

# invoice frequencies expressed as expense frequencies
INVOICE_STEPS = {
    "weekly": ("days", 7),
    "monthly": ("month", None),
    "quarterly": ("quarter", None),
    "yearly": ("year", None),
}


def calculate_next_due_date(current, frequency: str | None, frequency_value: int | None = None):
    """
    Advance ``current`` by one period.

    ``days`` adds ``frequency_value`` days (1 when unset); month/quarter/half/year
    use calendar arithmetic, so Jan 31 + 1 month lands on the last day of February.
    """
    if frequency == "days":
        days = frequency_value if frequency_value and frequency_value > 0 else 1
        return current + timedelta(days=int(days))
    return current + _CALENDAR_STEPS.get(frequency, _CALENDAR_STEPS["month"])


def next_invoice_due_date(due_date, frequency: str | None):
    step, value = INVOICE_STEPS.get(frequency, ("month", None))
    return calculate_next_due_date(due_date, step, value)


# ----------------------------- expenses ----------------------------- #
def ensure_successor(expense: Expense) -> tuple[Expense | None, bool]:
    """
    Return ``(successor, created)`` for the period after ``expense``.

    A new successor is only staged on the session; the caller commits. Paused
    (is_active False) and one-time expenses never get one.
    """
    if not expense.is_recursive or not expense.is_active or not expense.frequency:
        return None, False

    origin_id = expense.origin_id
    next_due = calculate_next_due_date(expense.due_date, expense.frequency, expense.frequency_value)

    existing = Expense.query.filter_by(parent_id=origin_id, due_date=next_due).first()
    if existing is not None:
        return existing, False

    successor = Expense(
        name=expense.name,
        category=expense.category,
        amount=expense.amount,
        description=expense.description,
        type="recursive",
        priority=expense.priority,
        payment_method=expense.payment_method,
        status="pending",
        due_date=next_due,
        frequency=expense.frequency,
        frequency_value=expense.frequency_value,
        is_active=True,
        parent_id=origin_id,
        created_by=expense.created_by,
    )
    db.session.add(successor)
    return successor, True


def _has_pending_successor(expense: Expense) -> bool:
    return db.session.query(Expense.id).filter(
        Expense.parent_id == expense.origin_id,
        Expense.due_date > expense.due_date,
        Expense.status == "pending",
    ).first() is not None


def _sweep_one(expense_id: int, now: datetime, retry: bool = True) -> tuple[bool, bool]:
    """Process one candidate; returns (successor_created, flipped_overdue)."""
    expense = db.session.get(Expense, expense_id)
    # re-check against persisted state, the candidate list may be stale
    if expense is None or not expense.is_active or expense.status not in ("pending", "overdue"):
        return False, False

    created = False
    if expense.frequency and not _has_pending_successor(expense):
        _, created = ensure_successor(expense)

    flipped = False
    if expense.status == "pending" and expense.due_date < now:
        expense.status = "overdue"
        flipped = True

    try:
        db.session.commit()
    except IntegrityError:
        # someone else inserted this period's successor between our check and insert
        db.session.rollback()
        if not retry:
            raise
        return _sweep_one(expense_id, now, retry=False)
    return created, flipped


def sweep_recursive_expenses(now: datetime | None = None) -> dict:
    """
    Periodic pass over active recursive expenses that are due.

    Idempotent: running it again with no state change creates nothing new.
    Each expense commits on its own; a failing row is logged and skipped.
    """
    now = now or datetime.utcnow()
    candidate_ids = [
        row.id
        for row in db.session.query(Expense.id)
        .filter(
            Expense.type == "recursive",
            Expense.is_active.is_(True),
            Expense.status.in_(("pending", "overdue")),
            Expense.due_date <= now,
        )
        .order_by(Expense.due_date.asc(), Expense.id.asc())
        .all()
    ]

    summary = {"checked": len(candidate_ids), "created": 0, "overdue": 0, "failed": 0}
    for expense_id in candidate_ids:
        try:
            created, flipped = _sweep_one(expense_id, now)
        except SQLAlchemyError:
            db.session.rollback()
            summary["failed"] += 1
            logger.exception("Recurrence sweep failed for expense #%s", expense_id)
            continue
        summary["created"] += int(created)
        summary["overdue"] += int(flipped)

    if candidate_ids:
        logger.info(
            "Recurring expense sweep: %(checked)s checked, %(created)s created, "
            "%(overdue)s overdue, %(failed)s failed",
            summary,
        )
    return summary


def _apply_payment(expense: Expense, paid_at: datetime, method: str | None) -> Expense | None:
    expense.status = "paid"
    expense.paid_date = paid_at
    if method:
        expense.payment_method = method
    successor, _ = ensure_successor(expense)
    return successor


def mark_expense_paid(expense_id, paid_date=None, payment_method=None) -> tuple[Expense, Expense | None]:
    """
    Mark an expense paid. For an active recursive expense the next period's
    successor is ensured in the same commit.
    Returns ``(expense, successor_or_None)``.
    """
    expense = db.session.get(Expense, expense_id) if expense_id is not None else None
    if expense is None:
        raise NotFoundError("Expense not found")
    if expense.status == "paid":
        raise StateError("Expense is already paid")
    if expense.status == "stopped":
        raise StateError("Stopped expenses cannot be marked paid")

    paid_at = parse_datetime(paid_date, "paid_date") if paid_date else datetime.utcnow()
    method = parse_choice(payment_method, "payment_method", PAYMENT_METHODS) if payment_method else None

    successor = _apply_payment(expense, paid_at, method)
    try:
        db.session.commit()
    except IntegrityError:
        # a concurrent sweep created the successor first; it will be found now
        db.session.rollback()
        successor = _apply_payment(expense, paid_at, method)
        db.session.commit()

    logger.info("Expense #%s marked paid%s", expense.id,
                f", successor #{successor.id} due {successor.due_date:%Y-%m-%d}" if successor else "")
    return expense, successor


# ----------------------------- invoices ----------------------------- #
def mark_invoice_paid(invoice_id, payment_date=None, payment_method=None) -> Invoice:
    """pending/overdue -> paid; a recurring invoice also gets its next_due_date advanced."""
    invoice = db.session.get(Invoice, invoice_id) if invoice_id is not None else None
    if invoice is None:
        raise NotFoundError("Invoice not found")
    if invoice.status == "paid":
        raise StateError("Invoice is already paid")

    invoice.status = "paid"
    invoice.payment_date = parse_datetime(payment_date, "payment_date") if payment_date else datetime.utcnow()
    if payment_method:
        invoice.payment_method = str(payment_method).strip()
    if invoice.recurring and invoice.frequency:
        invoice.next_due_date = next_invoice_due_date(invoice.due_date, invoice.frequency)
    db.session.commit()
    return invoice


def sweep_overdue_invoices(now: datetime | None = None) -> int:
    now = now or datetime.utcnow()
    flipped = Invoice.query.filter(
        Invoice.status == "pending",
        Invoice.due_date < now,
    ).update({"status": "overdue"}, synchronize_session=False)
    db.session.commit()
    return flipped


def run_recurrence_pass(now: datetime | None = None) -> dict:
    """Everything the scheduler does on one tick."""
    now = now or datetime.utcnow()
    summary = sweep_recursive_expenses(now)
    summary["invoices_overdue"] = sweep_overdue_invoices(now)
    return summary
