# services/expense_service.py
from __future__ import annotations

import logging
from collections import defaultdict
from decimal import Decimal

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from skyinvest.errors import ConflictError, NotFoundError, StateError, ValidationError
from skyinvest.extensions import db
from skyinvest.models import (
    EXPENSE_FREQUENCIES,
    EXPENSE_PRIORITIES,
    EXPENSE_TYPES,
    PAYMENT_METHODS,
    Expense,
)
from skyinvest.services.query_filters import ExpenseQuery, open_obligation_clause
from skyinvest.utils.parsing import parse_amount, parse_choice, parse_datetime, parse_positive_int, pick

logger = logging.getLogger(__name__)


def get_expense(expense_id) -> Expense:
    expense = db.session.get(Expense, expense_id) if expense_id is not None else None
    if expense is None:
        raise NotFoundError("Expense not found")
    return expense


def _frequency_fields(data: dict, current_frequency: str | None = None) -> dict:
    """Validate frequency/frequency_value for a recursive expense."""
    frequency = pick(data, "frequency", default=current_frequency)
    if not frequency:
        raise ValidationError("frequency is required for recursive expenses")
    frequency = parse_choice(frequency, "frequency", EXPENSE_FREQUENCIES)

    frequency_value = None
    if frequency == "days":
        raw = pick(data, "frequency_value", "frequencyValue")
        frequency_value = parse_positive_int(raw, "frequency_value") if raw not in (None, "") else 1
    return {"frequency": frequency, "frequency_value": frequency_value}


def _as_one_time(expense: Expense) -> None:
    expense.type = "one_time"
    expense.frequency = None
    expense.frequency_value = None
    expense.is_active = None
    expense.parent_id = None
    if expense.status in ("pending", "overdue"):
        expense.status = "active"


def _as_recursive(expense: Expense, freq: dict) -> None:
    expense.type = "recursive"
    expense.frequency = freq["frequency"]
    expense.frequency_value = freq["frequency_value"]
    if expense.is_active is None:
        expense.is_active = True
    if expense.status == "active":
        expense.status = "pending"


def create_expense(data: dict, created_by: int | None = None) -> Expense:
    name = (data.get("name") or "").strip()
    category = (data.get("category") or "").strip()
    if not name or not category:
        raise ValidationError("name, category, amount and due_date are required")
    if pick(data, "due_date", "dueDate") in (None, ""):
        raise ValidationError("name, category, amount and due_date are required")

    expense = Expense(
        name=name,
        category=category,
        amount=parse_amount(data.get("amount"), "amount"),
        description=(data.get("description") or "").strip() or None,
        priority=parse_choice(data.get("priority") or "medium", "priority", EXPENSE_PRIORITIES),
        due_date=parse_datetime(pick(data, "due_date", "dueDate"), "due_date"),
        notes=(data.get("notes") or "").strip() or None,
        created_by=created_by,
    )
    if data.get("payment_method"):
        expense.payment_method = parse_choice(data["payment_method"], "payment_method", PAYMENT_METHODS)

    kind = parse_choice(data.get("type") or "one_time", "type", EXPENSE_TYPES)
    if kind == "recursive":
        expense.status = "pending"
        expense.is_active = True
        _as_recursive(expense, _frequency_fields(data))
    else:
        expense.status = "active"
        _as_one_time(expense)

    db.session.add(expense)
    db.session.commit()
    logger.info("Expense #%s created (%s)", expense.id, expense.type)
    return expense


def update_expense(expense_id, data: dict) -> Expense:
    """
    Edit descriptive fields and recurrence settings. Status changes go through
    the paid / toggle-active / stop operations, not through here.
    """
    expense = get_expense(expense_id)

    kind = parse_choice(data["type"], "type", EXPENSE_TYPES) if data.get("type") else expense.type
    if kind != expense.type:
        if expense.parent_id is not None:
            raise StateError("Generated occurrences cannot change type")
        if Expense.query.filter_by(parent_id=expense.id).first() is not None:
            raise StateError("This expense has generated occurrences; stop it instead of changing its type")

    if data.get("name"):
        expense.name = str(data["name"]).strip()
    if data.get("category"):
        expense.category = str(data["category"]).strip()
    if "amount" in data:
        expense.amount = parse_amount(data.get("amount"), "amount")
    if "description" in data:
        expense.description = (data.get("description") or "").strip() or None
    if "notes" in data:
        expense.notes = (data.get("notes") or "").strip() or None
    if data.get("priority"):
        expense.priority = parse_choice(data["priority"], "priority", EXPENSE_PRIORITIES)
    if pick(data, "due_date", "dueDate"):
        expense.due_date = parse_datetime(pick(data, "due_date", "dueDate"), "due_date")
    if data.get("payment_method"):
        expense.payment_method = parse_choice(data["payment_method"], "payment_method", PAYMENT_METHODS)

    touches_frequency = any(k in data for k in ("frequency", "frequency_value", "frequencyValue"))
    if kind == "recursive":
        if kind != expense.type or touches_frequency:
            _as_recursive(expense, _frequency_fields(data, expense.frequency))
    else:
        if touches_frequency and kind == expense.type:
            raise ValidationError("frequency only applies to recursive expenses")
        _as_one_time(expense)

    try:
        db.session.commit()
    except IntegrityError:
        # (parent_id, due_date) is unique across a series
        db.session.rollback()
        raise ConflictError("Another occurrence of this expense is already due on that date")
    except Exception:
        db.session.rollback()
        raise
    return expense


def toggle_active(expense_id, is_active: bool | None = None) -> Expense:
    """
    Pause or resume successor generation for a recursive expense. The flag is
    applied to the whole series: the row itself plus every still-open
    occurrence sharing its origin.
    """
    expense = get_expense(expense_id)
    if not expense.is_recursive:
        raise StateError("Only recursive expenses can be paused or resumed")
    new_value = (not expense.is_active) if is_active is None else bool(is_active)
    origin_id = expense.origin_id

    expense.is_active = new_value
    Expense.query.filter(
        or_(Expense.id == origin_id, Expense.parent_id == origin_id),
        Expense.status.in_(("pending", "overdue")),
    ).update({"is_active": new_value}, synchronize_session=False)
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info("Expense series #%s generation %s", origin_id, "resumed" if new_value else "paused")
    return expense


def stop_expense(expense_id) -> Expense:
    expense = get_expense(expense_id)
    if expense.status == "paid":
        raise StateError("Paid expenses cannot be stopped")
    expense.status = "stopped"
    if expense.is_recursive:
        expense.is_active = False
    db.session.commit()
    return expense


def delete_expense(expense_id) -> None:
    expense = get_expense(expense_id)
    if expense.parent_id is None and Expense.query.filter_by(parent_id=expense.id).first():
        raise ConflictError("This expense has generated occurrences; stop it instead of deleting it")
    db.session.delete(expense)
    db.session.commit()


def list_expenses(options: ExpenseQuery):
    query = options.build(Expense.query).order_by(Expense.due_date.asc(), Expense.id.asc())
    return options.paginate(query)


def _add(bucket: dict, key, amount) -> None:
    bucket[key] += Decimal(str(amount or 0))


def statistics(options: ExpenseQuery) -> dict:
    """
    Totals by status over the date window, and breakdowns over obligations that
    are still open (active one-time, or live pending/overdue occurrences).
    """
    rows = options.build(Expense.query).all()
    by_status = defaultdict(Decimal)
    for e in rows:
        _add(by_status, e.status, e.amount)

    open_rows = options.build(Expense.query.filter(open_obligation_clause())).all()
    by_category, by_priority, by_type = defaultdict(Decimal), defaultdict(Decimal), defaultdict(Decimal)
    for e in open_rows:
        _add(by_category, e.category, e.amount)
        _add(by_priority, e.priority, e.amount)
        _add(by_type, e.type, e.amount)

    def _floats(bucket):
        return {k: float(v) for k, v in bucket.items()}

    return {
        "total_amount": float(sum(by_status.values(), Decimal("0"))),
        "open_amount": float(sum(by_category.values(), Decimal("0"))),
        "paid_amount": float(by_status.get("paid", 0)),
        "pending_amount": float(by_status.get("pending", 0) + by_status.get("active", 0)),
        "overdue_amount": float(by_status.get("overdue", 0)),
        "category_breakdown": _floats(by_category),
        "priority_breakdown": _floats(by_priority),
        "type_breakdown": _floats(by_type),
        "expense_count": len(rows),
        "open_count": len(open_rows),
    }
