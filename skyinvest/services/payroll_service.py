# services/payroll_service.py
"""Employees with their attendance and reviews, and per-period payroll records. Payroll is not auto-recurring."""
from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal

from skyinvest.errors import NotFoundError, StateError, ValidationError
from skyinvest.extensions import db
from skyinvest.models import (
    ATTENDANCE_STATUSES,
    EMPLOYEE_STATUSES,
    EMPLOYMENT_TYPES,
    PAYMENT_METHODS,
    PAYROLL_STATUSES,
    Employee,
    EmployeeAttendance,
    EmployeePerformance,
    Payroll,
)
from skyinvest.utils.parsing import (
    parse_amount,
    parse_choice,
    parse_date,
    parse_datetime,
    parse_positive_int,
    pick,
    safe_int,
)

logger = logging.getLogger(__name__)


# ----------------------------- employees ----------------------------- #
def get_employee(employee_id) -> Employee:
    employee = db.session.get(Employee, employee_id) if employee_id is not None else None
    if employee is None:
        raise NotFoundError("Employee not found")
    return employee


def _apply_employee_fields(employee: Employee, data: dict) -> None:
    for key in ("name", "email", "position", "department", "phone"):
        if data.get(key):
            setattr(employee, key, str(data[key]).strip())
    if data.get("employment_type"):
        employee.employment_type = parse_choice(data["employment_type"], "employment_type", EMPLOYMENT_TYPES)
    if data.get("status"):
        employee.status = parse_choice(data["status"], "status", EMPLOYEE_STATUSES)
    if "salary" in data:
        employee.salary = parse_amount(data["salary"], "salary")
    if data.get("currency"):
        employee.currency = str(data["currency"]).strip()
    if pick(data, "hire_date", "hireDate"):
        employee.hire_date = parse_date(pick(data, "hire_date", "hireDate"), "hire_date")
    if pick(data, "end_date", "endDate"):
        employee.end_date = parse_date(pick(data, "end_date", "endDate"), "end_date")


def create_employee(data: dict) -> Employee:
    if not all(data.get(k) for k in ("name", "email", "position")):
        raise ValidationError("name, email and position are required")
    employee = Employee()
    _apply_employee_fields(employee, data)
    if employee.salary is None:
        employee.salary = 0
    db.session.add(employee)
    db.session.commit()
    return employee


def update_employee(employee_id, data: dict) -> Employee:
    employee = get_employee(employee_id)
    _apply_employee_fields(employee, data)
    db.session.commit()
    return employee


def list_employees(status: str | None = None, department: str | None = None) -> list[Employee]:
    q = Employee.query
    if status:
        q = q.filter_by(status=parse_choice(status, "status", EMPLOYEE_STATUSES))
    if department:
        q = q.filter_by(department=department)
    return q.order_by(Employee.name.asc()).all()


def delete_employee(employee_id) -> None:
    """Removes the employee together with their payroll, attendance and reviews."""
    employee = get_employee(employee_id)
    db.session.delete(employee)
    db.session.commit()
    logger.info("Employee #%s deleted", employee_id)


# ----------------------------- attendance ----------------------------- #
def record_attendance(employee_id, data: dict) -> EmployeeAttendance:
    employee = get_employee(employee_id)
    if not data.get("date") or not data.get("status"):
        raise ValidationError("date and status are required")

    hours = pick(data, "hours_worked", "hoursWorked")
    hours = parse_amount(hours, "hours_worked") if hours not in (None, "") else Decimal("0")
    if hours > 24:
        raise ValidationError("hours_worked cannot exceed 24")

    record = EmployeeAttendance(
        employee_id=employee.id,
        date=parse_date(data["date"], "date"),
        status=parse_choice(data["status"], "status", ATTENDANCE_STATUSES),
        hours_worked=hours,
        notes=(data.get("notes") or "").strip() or None,
    )
    db.session.add(record)
    db.session.commit()
    return record


def list_attendance(employee_id, start_date=None, end_date=None) -> list[EmployeeAttendance]:
    """Both bounds are inclusive calendar days."""
    employee = get_employee(employee_id)
    q = EmployeeAttendance.query.filter_by(employee_id=employee.id)
    if start_date:
        q = q.filter(EmployeeAttendance.date >= parse_date(start_date, "start_date"))
    if end_date:
        q = q.filter(EmployeeAttendance.date <= parse_date(end_date, "end_date"))
    return q.order_by(EmployeeAttendance.date.desc(), EmployeeAttendance.id.desc()).all()


# ----------------------------- performance ----------------------------- #
def add_performance_review(employee_id, data: dict, reviewer_id: int | None = None) -> EmployeePerformance:
    employee = get_employee(employee_id)
    review_date = pick(data, "review_date", "reviewDate")
    feedback = (data.get("feedback") or "").strip()
    if not review_date or data.get("rating") in (None, "") or not feedback:
        raise ValidationError("review_date, rating and feedback are required")

    rating = parse_positive_int(data["rating"], "rating")
    if rating > 5:
        raise ValidationError("rating must be between 1 and 5")

    review = EmployeePerformance(
        employee_id=employee.id,
        reviewer_id=reviewer_id,
        review_date=parse_date(review_date, "review_date"),
        rating=rating,
        feedback=feedback,
        strengths=(data.get("strengths") or "").strip() or None,
        improvements=(data.get("improvements") or "").strip() or None,
    )
    db.session.add(review)
    db.session.commit()
    return review


def list_performance_reviews(employee_id) -> list[EmployeePerformance]:
    employee = get_employee(employee_id)
    return (
        EmployeePerformance.query.filter_by(employee_id=employee.id)
        .order_by(EmployeePerformance.review_date.desc(), EmployeePerformance.id.desc())
        .all()
    )


# ----------------------------- payroll ----------------------------- #
def get_payroll(payroll_id) -> Payroll:
    payroll = db.session.get(Payroll, payroll_id) if payroll_id is not None else None
    if payroll is None:
        raise NotFoundError("Payroll record not found")
    return payroll


def _validate(payroll: Payroll) -> None:
    if payroll.period_end < payroll.period_start:
        raise ValidationError("period_end cannot be before period_start")
    if payroll.recalculate_net() < 0:
        raise ValidationError("Deductions and taxes exceed salary")


def create_payroll(data: dict) -> Payroll:
    employee = get_employee(safe_int(pick(data, "employee_id", "employeeId")))
    start = pick(data, "period_start", "periodStart")
    end = pick(data, "period_end", "periodEnd")
    if not start or not end:
        raise ValidationError("period_start and period_end are required")

    salary = pick(data, "salary")
    payroll = Payroll(
        employee_id=employee.id,
        period_start=parse_date(start, "period_start"),
        period_end=parse_date(end, "period_end"),
        salary=parse_amount(salary if salary is not None else employee.salary, "salary"),
        deductions=parse_amount(data.get("deductions", 0), "deductions"),
        taxes=parse_amount(data.get("taxes", 0), "taxes"),
        status="draft",
        notes=(data.get("notes") or "").strip() or None,
    )
    _validate(payroll)
    db.session.add(payroll)
    db.session.commit()
    return payroll


def update_payroll(payroll_id, data: dict) -> Payroll:
    """Edits recompute net_amount; a paid record is frozen."""
    payroll = get_payroll(payroll_id)
    if payroll.status == "paid":
        raise StateError("Paid payroll records cannot be edited")

    for key in ("salary", "deductions", "taxes"):
        if key in data:
            setattr(payroll, key, parse_amount(data[key], key))
    if pick(data, "period_start", "periodStart"):
        payroll.period_start = parse_date(pick(data, "period_start", "periodStart"), "period_start")
    if pick(data, "period_end", "periodEnd"):
        payroll.period_end = parse_date(pick(data, "period_end", "periodEnd"), "period_end")
    if data.get("status"):
        status = parse_choice(data["status"], "status", PAYROLL_STATUSES)
        if status == "paid":
            raise StateError("Use the paid endpoint to pay a payroll record")
        payroll.status = status
    if "notes" in data:
        payroll.notes = (data.get("notes") or "").strip() or None

    try:
        _validate(payroll)
    except ValidationError:
        db.session.rollback()
        raise
    db.session.commit()
    return payroll


def mark_payroll_paid(payroll_id, payment_date=None, payment_method=None) -> Payroll:
    payroll = get_payroll(payroll_id)
    if payroll.status == "paid":
        raise StateError("Payroll record is already paid")
    payroll.status = "paid"
    payroll.payment_date = parse_datetime(payment_date, "payment_date") if payment_date else datetime.utcnow()
    if payment_method:
        payroll.payment_method = parse_choice(payment_method, "payment_method", PAYMENT_METHODS)
    db.session.commit()
    logger.info("Payroll #%s paid (%s)", payroll.id, payroll.net_amount)
    return payroll


def list_payroll(employee_id=None, status: str | None = None) -> list[Payroll]:
    q = Payroll.query
    if employee_id:
        q = q.filter_by(employee_id=safe_int(employee_id))
    if status:
        q = q.filter_by(status=parse_choice(status, "status", PAYROLL_STATUSES))
    return q.order_by(Payroll.period_end.desc(), Payroll.id.desc()).all()
