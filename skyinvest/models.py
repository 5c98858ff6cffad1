from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from skyinvest.extensions import db

USER_TYPES = ("admin", "entrepreneur", "investor")

BUSINESS_STATUSES = ("pending", "in_review", "approved", "rejected", "active")
BUSINESS_TYPES = ("submission", "public")

DECISION_STATUSES = ("pending", "approved", "rejected")  # ShareRequest / Investment

NOTIFICATION_TYPES = (
    "business_status",
    "share_request",
    "share_approved",
    "share_rejected",
    "expense_status",
    "investment_request",
)

EXPENSE_TYPES = ("one_time", "recursive")
EXPENSE_PRIORITIES = ("high", "medium", "low")
EXPENSE_STATUSES = ("active", "paid", "pending", "overdue", "stopped")
EXPENSE_FREQUENCIES = ("days", "month", "quarter", "half", "year")
PAYMENT_METHODS = ("cash", "credit_card", "bank_transfer", "check")

INVOICE_STATUSES = ("pending", "paid", "overdue")
INVOICE_FREQUENCIES = ("weekly", "monthly", "quarterly", "yearly")

EMPLOYMENT_TYPES = ("full-time", "part-time", "contract")
EMPLOYEE_STATUSES = ("active", "inactive", "on_leave")
PAYROLL_STATUSES = ("draft", "processed", "paid")
ATTENDANCE_STATUSES = ("present", "absent", "leave", "sick_leave", "holiday")


def _iso(value):
    return value.isoformat() if value else None


def _money(value):
    return float(value) if value is not None else None


# ------------------ User Model ------------------
class User(db.Model):
    __tablename__ = "user"

    id = db.Column(db.Integer, primary_key=True)

    name     = db.Column(db.String(150), nullable=False)
    email    = db.Column(db.String(120), unique=True, nullable=False, index=True)
    password = db.Column(db.String(200), nullable=False)

    user_type = db.Column(db.String(20), nullable=False, default="investor")  # admin|entrepreneur|investor
    status    = db.Column(db.String(20), nullable=False, default="Active")

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def to_dict(self):
        return {
            "id": self.id, "name": self.name, "email": self.email,
            "user_type": self.user_type, "status": self.status,
            "created_at": _iso(self.created_at),
        }

    def __repr__(self):
        return f"<User {self.id} {self.email}>"


# ------------------ Category ------------------
class Category(db.Model):
    __tablename__ = "categories"

    id = db.Column(db.Integer, primary_key=True)

    name             = db.Column(db.String(120), unique=True, nullable=False)
    description      = db.Column(db.String(500), nullable=True)
    registration_fee = db.Column(db.Numeric(18, 2), nullable=False, default=0)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def to_dict(self):
        return {
            "id": self.id, "name": self.name, "description": self.description,
            "registration_fee": _money(self.registration_fee),
            "created_at": _iso(self.created_at),
        }


# ------------------ Business Model ------------------
class Business(db.Model):
    __tablename__ = "businesses"
    __table_args__ = (
        db.CheckConstraint("remaining_shares >= 0", name="ck_business_remaining_nonneg"),
        db.CheckConstraint("remaining_shares <= total_shares", name="ck_business_remaining_le_total"),
    )

    id = db.Column(db.Integer, primary_key=True)

    entrepreneur_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=True, index=True)
    entrepreneur    = db.relationship("User", foreign_keys=[entrepreneur_id], lazy=True)

    title       = db.Column(db.String(255), nullable=False)
    category    = db.Column(db.String(120), nullable=True)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)
    description = db.Column(db.Text, nullable=True)

    total_shares     = db.Column(db.Integer, nullable=False, default=0)
    remaining_shares = db.Column(db.Integer, nullable=False, default=0)
    share_value      = db.Column(db.Numeric(18, 2), nullable=False, default=0)
    minimum_shares_per_request = db.Column(db.Integer, nullable=False, default=1)

    status = db.Column(db.String(20), nullable=False, default="pending", index=True)
    type   = db.Column(db.String(20), nullable=False, default="submission", index=True)  # submission|public

    # public listings point back at the submission they were published from
    submission_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=True)
    submission    = db.relationship("Business", remote_side=[id], foreign_keys=[submission_id], lazy=True)

    rejection_reason = db.Column(db.String(500), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "entrepreneur_id": self.entrepreneur_id,
            "title": self.title,
            "category": self.category,
            "category_id": self.category_id,
            "description": self.description,
            "total_shares": self.total_shares,
            "remaining_shares": self.remaining_shares,
            "share_value": _money(self.share_value),
            "minimum_shares_per_request": self.minimum_shares_per_request,
            "status": self.status,
            "type": self.type,
            "submission_id": self.submission_id,
            "rejection_reason": self.rejection_reason,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


# ------------------ Share Request ------------------
class ShareRequest(db.Model):
    __tablename__ = "share_requests"

    id = db.Column(db.Integer, primary_key=True)

    investor_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)

    investor = db.relationship("User", foreign_keys=[investor_id], lazy=True)
    business = db.relationship("Business", backref=db.backref("share_requests", lazy=True), lazy=True)

    requested_shares = db.Column(db.Integer, nullable=False)
    share_value      = db.Column(db.Numeric(18, 2), nullable=False)   # snapshot at request time
    total_amount     = db.Column(db.Numeric(18, 2), nullable=False)   # requested_shares * share_value, never recomputed

    status           = db.Column(db.String(20), nullable=False, default="pending", index=True)
    approved_shares  = db.Column(db.Integer, nullable=True)
    rejection_reason = db.Column(db.String(500), nullable=True)
    decided_at       = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "investor_id": self.investor_id,
            "business_id": self.business_id,
            "business_title": self.business.title if self.business else None,
            "requested_shares": self.requested_shares,
            "share_value": _money(self.share_value),
            "total_amount": _money(self.total_amount),
            "status": self.status,
            "approved_shares": self.approved_shares,
            "rejection_reason": self.rejection_reason,
            "decided_at": _iso(self.decided_at),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


# ------------------ Investment ------------------
class Investment(db.Model):
    __tablename__ = "investments"

    id = db.Column(db.Integer, primary_key=True)

    investor_id      = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    business_id      = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)
    share_request_id = db.Column(db.Integer, db.ForeignKey("share_requests.id"), nullable=True, unique=True)

    business = db.relationship("Business", backref=db.backref("investments", lazy=True), lazy=True)

    shares = db.Column(db.Integer, nullable=True)
    amount = db.Column(db.Numeric(18, 2), nullable=False)
    status = db.Column(db.String(20), nullable=False, default="pending", index=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "investor_id": self.investor_id,
            "business_id": self.business_id,
            "business_title": self.business.title if self.business else None,
            "share_request_id": self.share_request_id,
            "shares": self.shares,
            "amount": _money(self.amount),
            "status": self.status,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


# ------------------ Notification ------------------
class Notification(db.Model):
    __tablename__ = "notifications"

    id      = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)

    type       = db.Column(db.String(40), nullable=False)
    title      = db.Column(db.String(255), nullable=False)
    message    = db.Column(db.Text, nullable=False)
    related_id = db.Column(db.Integer, nullable=True)
    is_read    = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def to_dict(self):
        return {
            "id": self.id, "user_id": self.user_id, "type": self.type,
            "title": self.title, "message": self.message,
            "related_id": self.related_id, "is_read": self.is_read,
            "created_at": _iso(self.created_at),
        }


# ------------------ Expense ------------------
class Expense(db.Model):
    __tablename__ = "expenses"
    # one successor per (origin, period)
    __table_args__ = (db.UniqueConstraint("parent_id", "due_date", name="uq_expense_origin_due"),)

    id = db.Column(db.Integer, primary_key=True)

    name        = db.Column(db.String(255), nullable=False)
    category    = db.Column(db.String(120), nullable=False)
    amount      = db.Column(db.Numeric(18, 2), nullable=False)
    description = db.Column(db.Text, nullable=True)

    type     = db.Column(db.String(20), nullable=False, default="one_time", index=True)  # one_time|recursive
    priority = db.Column(db.String(10), nullable=False, default="medium")
    status   = db.Column(db.String(20), nullable=False, default="active", index=True)

    due_date  = db.Column(db.DateTime, nullable=False, index=True)
    paid_date = db.Column(db.DateTime, nullable=True)
    payment_method = db.Column(db.String(30), nullable=True)

    # recursive only
    frequency       = db.Column(db.String(10), nullable=True)
    frequency_value = db.Column(db.Integer, nullable=True)   # days per cycle when frequency == "days"
    is_active       = db.Column(db.Boolean, nullable=True)

    # always the origin's id, never a chain
    parent_id = db.Column(db.Integer, db.ForeignKey("expenses.id"), nullable=True, index=True)
    parent = db.relationship(
        "Expense",
        remote_side=[id],
        backref=db.backref("occurrences", lazy=True),
        foreign_keys=[parent_id],
        lazy=True,
    )

    notes      = db.Column(db.String(500), nullable=True)
    created_by = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    @property
    def origin_id(self) -> int | None:
        return self.parent_id or self.id

    @property
    def is_recursive(self) -> bool:
        return self.type == "recursive"

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "amount": _money(self.amount),
            "description": self.description,
            "type": self.type,
            "priority": self.priority,
            "status": self.status,
            "due_date": _iso(self.due_date),
            "paid_date": _iso(self.paid_date),
            "payment_method": self.payment_method,
            "frequency": self.frequency,
            "frequency_value": self.frequency_value,
            "is_active": self.is_active,
            "parent_id": self.parent_id,
            "notes": self.notes,
            "created_by": self.created_by,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


# ------------------ Invoice ------------------
class Invoice(db.Model):
    __tablename__ = "invoices"

    id = db.Column(db.Integer, primary_key=True)

    vendor_name = db.Column(db.String(255), nullable=False)
    amount      = db.Column(db.Numeric(18, 2), nullable=False)
    currency    = db.Column(db.String(10), nullable=False, default="USD")
    category    = db.Column(db.String(60), nullable=False)
    description = db.Column(db.Text, nullable=False)

    due_date       = db.Column(db.DateTime, nullable=False, index=True)
    status         = db.Column(db.String(20), nullable=False, default="pending", index=True)
    payment_date   = db.Column(db.DateTime, nullable=True)
    payment_method = db.Column(db.String(30), nullable=True)

    recurring     = db.Column(db.Boolean, nullable=False, default=False)
    frequency     = db.Column(db.String(20), nullable=True)   # weekly|monthly|quarterly|yearly
    next_due_date = db.Column(db.DateTime, nullable=True)

    notes = db.Column(db.String(500), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def to_dict(self):
        return {
            "id": self.id, "vendor_name": self.vendor_name,
            "amount": _money(self.amount), "currency": self.currency,
            "category": self.category, "description": self.description,
            "due_date": _iso(self.due_date), "status": self.status,
            "payment_date": _iso(self.payment_date), "payment_method": self.payment_method,
            "recurring": self.recurring, "frequency": self.frequency,
            "next_due_date": _iso(self.next_due_date), "notes": self.notes,
            "created_at": _iso(self.created_at), "updated_at": _iso(self.updated_at),
        }


# ------------------ Employee ------------------
class Employee(db.Model):
    __tablename__ = "employees"

    id = db.Column(db.Integer, primary_key=True)

    name       = db.Column(db.String(150), nullable=False)
    email      = db.Column(db.String(120), nullable=False, index=True)
    phone      = db.Column(db.String(50), nullable=True)
    position   = db.Column(db.String(120), nullable=False)
    department = db.Column(db.String(120), nullable=True)

    employment_type = db.Column(db.String(20), nullable=False, default="full-time")
    salary          = db.Column(db.Numeric(18, 2), nullable=False, default=0)
    currency        = db.Column(db.String(10), nullable=False, default="Frw")
    status          = db.Column(db.String(20), nullable=False, default="active")

    hire_date = db.Column(db.Date, nullable=True)
    end_date  = db.Column(db.Date, nullable=True)

    payrolls = db.relationship("Payroll", backref="employee", lazy=True, cascade="all, delete-orphan")

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def to_dict(self):
        return {
            "id": self.id, "name": self.name, "email": self.email, "phone": self.phone,
            "position": self.position, "department": self.department,
            "employment_type": self.employment_type, "salary": _money(self.salary),
            "currency": self.currency, "status": self.status,
            "hire_date": _iso(self.hire_date), "end_date": _iso(self.end_date),
            "created_at": _iso(self.created_at),
        }


# ------------------ Payroll ------------------
class Payroll(db.Model):
    __tablename__ = "payrolls"

    id          = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)

    period_start = db.Column(db.Date, nullable=False)
    period_end   = db.Column(db.Date, nullable=False, index=True)

    salary     = db.Column(db.Numeric(18, 2), nullable=False)
    deductions = db.Column(db.Numeric(18, 2), nullable=False, default=0)
    taxes      = db.Column(db.Numeric(18, 2), nullable=False, default=0)
    net_amount = db.Column(db.Numeric(18, 2), nullable=False)

    status         = db.Column(db.String(20), nullable=False, default="draft", index=True)
    payment_date   = db.Column(db.DateTime, nullable=True)
    payment_method = db.Column(db.String(30), nullable=True)
    notes          = db.Column(db.String(500), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def recalculate_net(self) -> Decimal:
        self.net_amount = (
            Decimal(str(self.salary or 0))
            - Decimal(str(self.deductions or 0))
            - Decimal(str(self.taxes or 0))
        )
        return self.net_amount

    def to_dict(self):
        return {
            "id": self.id, "employee_id": self.employee_id,
            "employee_name": self.employee.name if self.employee else None,
            "period_start": _iso(self.period_start), "period_end": _iso(self.period_end),
            "salary": _money(self.salary), "deductions": _money(self.deductions),
            "taxes": _money(self.taxes), "net_amount": _money(self.net_amount),
            "status": self.status, "payment_date": _iso(self.payment_date),
            "payment_method": self.payment_method, "notes": self.notes,
            "created_at": _iso(self.created_at), "updated_at": _iso(self.updated_at),
        }


# ------------------ Attendance ------------------
class EmployeeAttendance(db.Model):
    __tablename__ = "employee_attendance"

    id          = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)
    employee    = db.relationship(
        "Employee", backref=db.backref("attendance", lazy=True, cascade="all, delete-orphan"), lazy=True
    )

    date         = db.Column(db.Date, nullable=False, index=True)
    status       = db.Column(db.String(20), nullable=False)
    hours_worked = db.Column(db.Numeric(4, 2), nullable=False, default=0)   # 0..24
    notes        = db.Column(db.String(500), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def to_dict(self):
        return {
            "id": self.id, "employee_id": self.employee_id,
            "date": _iso(self.date), "status": self.status,
            "hours_worked": _money(self.hours_worked), "notes": self.notes,
            "created_at": _iso(self.created_at),
        }


# ------------------ Performance review ------------------
class EmployeePerformance(db.Model):
    __tablename__ = "employee_performance"

    id          = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)
    employee    = db.relationship(
        "Employee", backref=db.backref("reviews", lazy=True, cascade="all, delete-orphan"), lazy=True
    )
    reviewer_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=True)
    reviewer    = db.relationship("User", lazy=True)

    review_date  = db.Column(db.Date, nullable=False, index=True)
    rating       = db.Column(db.Integer, nullable=False)   # 1..5
    feedback     = db.Column(db.Text, nullable=False)
    strengths    = db.Column(db.Text, nullable=True)
    improvements = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def to_dict(self):
        return {
            "id": self.id, "employee_id": self.employee_id,
            "reviewer_id": self.reviewer_id,
            "reviewer_name": self.reviewer.name if self.reviewer else None,
            "review_date": _iso(self.review_date), "rating": self.rating,
            "feedback": self.feedback, "strengths": self.strengths,
            "improvements": self.improvements,
            "created_at": _iso(self.created_at),
        }
