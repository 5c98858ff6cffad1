from datetime import datetime
from decimal import Decimal

import pytest

from skyinvest.errors import StateError
from skyinvest.extensions import db
from skyinvest.models import Expense, Invoice
from skyinvest.services import recurrence
from skyinvest.services.recurrence import calculate_next_due_date


def _recursive(due, frequency="month", frequency_value=None, is_active=True, status="pending", **kw):
    expense = Expense(
        name=kw.get("name", "Office rent"),
        category="rent",
        amount=Decimal("1200.00"),
        type="recursive",
        priority="high",
        status=status,
        due_date=due,
        frequency=frequency,
        frequency_value=frequency_value,
        is_active=is_active,
        payment_method=kw.get("payment_method"),
    )
    db.session.add(expense)
    db.session.commit()
    return expense


def _occurrences(origin_id):
    return Expense.query.filter_by(parent_id=origin_id).order_by(Expense.due_date).all()


@pytest.mark.parametrize("current, frequency, value, expected", [
    (datetime(2024, 1, 31), "month", None, datetime(2024, 2, 29)),
    (datetime(2023, 1, 31), "month", None, datetime(2023, 2, 28)),
    (datetime(2024, 1, 10), "days", 7, datetime(2024, 1, 17)),
    (datetime(2024, 1, 10), "days", None, datetime(2024, 1, 11)),
    (datetime(2024, 1, 15), "quarter", None, datetime(2024, 4, 15)),
    (datetime(2024, 8, 31), "half", None, datetime(2025, 2, 28)),
    (datetime(2024, 2, 29), "year", None, datetime(2025, 2, 28)),
    (datetime(2024, 3, 5), "fortnightly", None, datetime(2024, 4, 5)),
])
def test_calculate_next_due_date(current, frequency, value, expected):
    assert calculate_next_due_date(current, frequency, value) == expected


def test_invoice_steps():
    assert recurrence.next_invoice_due_date(datetime(2024, 1, 10), "weekly") == datetime(2024, 1, 17)
    assert recurrence.next_invoice_due_date(datetime(2024, 1, 31), "monthly") == datetime(2024, 2, 29)
    assert recurrence.next_invoice_due_date(datetime(2024, 1, 31), "quarterly") == datetime(2024, 4, 30)
    assert recurrence.next_invoice_due_date(datetime(2024, 1, 31), "yearly") == datetime(2025, 1, 31)


def test_mark_paid_creates_one_flattened_successor(app):
    origin = _recursive(datetime(2024, 1, 31), payment_method="bank_transfer")

    paid, successor = recurrence.mark_expense_paid(origin.id, paid_date="2024-01-30", payment_method="cash")
    assert paid.status == "paid"
    assert paid.paid_date == datetime(2024, 1, 30)
    assert paid.payment_method == "cash"
    assert successor.status == "pending"
    assert successor.due_date == datetime(2024, 2, 29)
    assert successor.parent_id == origin.id
    assert successor.is_active is True
    assert successor.amount == Decimal("1200.00")
    assert successor.payment_method == "cash"

    _, third = recurrence.mark_expense_paid(successor.id)
    assert third.due_date == datetime(2024, 3, 29)
    # parent_id always points at the origin, never at the previous occurrence
    assert third.parent_id == origin.id
    assert len(_occurrences(origin.id)) == 2


def test_mark_paid_rejects_paid_and_stopped(app):
    expense = _recursive(datetime(2024, 1, 1))
    recurrence.mark_expense_paid(expense.id)
    with pytest.raises(StateError):
        recurrence.mark_expense_paid(expense.id)

    stopped = _recursive(datetime(2024, 5, 1), status="stopped", is_active=False, name="Cleaning")
    with pytest.raises(StateError):
        recurrence.mark_expense_paid(stopped.id)


def test_paused_or_one_time_expense_gets_no_successor(app):
    paused = _recursive(datetime(2024, 1, 1), is_active=False)
    _, successor = recurrence.mark_expense_paid(paused.id)
    assert successor is None

    one_time = Expense(
        name="Laptop", category="equipment", amount=Decimal("900"), type="one_time",
        status="active", due_date=datetime(2024, 1, 5),
    )
    db.session.add(one_time)
    db.session.commit()
    _, successor = recurrence.mark_expense_paid(one_time.id)
    assert successor is None
    assert Expense.query.count() == 2


def test_sweep_creates_successor_and_flags_overdue(app):
    origin = _recursive(datetime(2024, 2, 1))

    summary = recurrence.sweep_recursive_expenses(now=datetime(2024, 2, 15))
    assert summary == {"checked": 1, "created": 1, "overdue": 1, "failed": 0}

    db.session.expire_all()
    assert db.session.get(Expense, origin.id).status == "overdue"
    (successor,) = _occurrences(origin.id)
    assert successor.due_date == datetime(2024, 3, 1)
    assert successor.status == "pending"


def test_sweep_is_idempotent(app):
    origin = _recursive(datetime(2024, 2, 1))
    now = datetime(2024, 2, 15)

    recurrence.sweep_recursive_expenses(now=now)
    second = recurrence.sweep_recursive_expenses(now=now)
    assert second["created"] == 0
    assert second["overdue"] == 0
    assert len(_occurrences(origin.id)) == 1


def test_sweep_skips_paused_and_future(app):
    _recursive(datetime(2024, 2, 1), is_active=False)
    _recursive(datetime(2024, 3, 1), name="Internet")

    summary = recurrence.sweep_recursive_expenses(now=datetime(2024, 2, 15))
    assert summary["checked"] == 0
    assert Expense.query.filter(Expense.parent_id.isnot(None)).count() == 0
    assert Expense.query.filter_by(status="overdue").count() == 0


def test_sweep_then_mark_paid_reuses_successor(app):
    origin = _recursive(datetime(2024, 2, 1))
    recurrence.sweep_recursive_expenses(now=datetime(2024, 2, 15))
    (created,) = _occurrences(origin.id)

    _, successor = recurrence.mark_expense_paid(origin.id)
    assert successor.id == created.id
    assert len(_occurrences(origin.id)) == 1


def test_mark_paid_then_sweep_creates_nothing(app):
    origin = _recursive(datetime(2024, 2, 1))
    recurrence.mark_expense_paid(origin.id)

    summary = recurrence.sweep_recursive_expenses(now=datetime(2024, 2, 15))
    assert summary["created"] == 0
    assert len(_occurrences(origin.id)) == 1


def test_day_based_sweep(app):
    origin = _recursive(datetime(2024, 1, 10), frequency="days", frequency_value=7)
    recurrence.sweep_recursive_expenses(now=datetime(2024, 1, 10, 12))
    (successor,) = _occurrences(origin.id)
    assert successor.due_date == datetime(2024, 1, 17)
    assert successor.frequency_value == 7


def test_sweep_keeps_going_after_a_failing_row(app, monkeypatch):
    first = _recursive(datetime(2024, 2, 1))
    second = _recursive(datetime(2024, 2, 2), name="Water")
    real = recurrence._sweep_one

    def flaky(expense_id, now, retry=True):
        if expense_id == first.id:
            raise recurrence.SQLAlchemyError("database is locked")
        return real(expense_id, now, retry)

    monkeypatch.setattr(recurrence, "_sweep_one", flaky)
    summary = recurrence.sweep_recursive_expenses(now=datetime(2024, 2, 15))
    assert summary["failed"] == 1
    assert summary["created"] == 1
    assert len(_occurrences(second.id)) == 1


def _invoice(due, recurring=False, frequency=None, status="pending"):
    invoice = Invoice(
        vendor_name="Acme Hosting", amount=Decimal("49.99"), category="software",
        description="Monthly hosting", due_date=due, status=status,
        recurring=recurring, frequency=frequency,
    )
    db.session.add(invoice)
    db.session.commit()
    return invoice


def test_mark_invoice_paid_advances_next_due_date(app):
    invoice = _invoice(datetime(2024, 1, 31), recurring=True, frequency="monthly")
    paid = recurrence.mark_invoice_paid(invoice.id, payment_date="2024-01-29", payment_method="card")
    assert paid.status == "paid"
    assert paid.payment_date == datetime(2024, 1, 29)
    assert paid.next_due_date == datetime(2024, 2, 29)
    # no successor row for invoices
    assert Invoice.query.count() == 1

    with pytest.raises(StateError):
        recurrence.mark_invoice_paid(invoice.id)


def test_non_recurring_invoice_has_no_next_due_date(app):
    invoice = _invoice(datetime(2024, 1, 31))
    assert recurrence.mark_invoice_paid(invoice.id).next_due_date is None


def test_recurrence_pass_flags_overdue_invoices(app):
    late = _invoice(datetime(2024, 1, 1))
    _invoice(datetime(2024, 3, 1))
    _invoice(datetime(2024, 1, 1), status="paid")

    summary = recurrence.run_recurrence_pass(now=datetime(2024, 2, 1))
    assert summary["invoices_overdue"] == 1
    db.session.expire_all()
    assert db.session.get(Invoice, late.id).status == "overdue"
