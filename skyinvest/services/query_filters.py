# services/query_filters.py
"""
Typed list options for the filterable listings.

Each listing declares a dataclass whose fields carry ``column``/``op`` metadata;
``build`` turns the populated fields into SQLAlchemy filters, so routes never
assemble filter dicts by hand.
"""
from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime, timedelta

from sqlalchemy import and_, or_

from skyinvest.errors import ValidationError
from skyinvest.models import (
    EXPENSE_PRIORITIES,
    EXPENSE_STATUSES,
    EXPENSE_TYPES,
    INVOICE_STATUSES,
    Expense,
    Invoice,
)
from skyinvest.utils.parsing import parse_datetime, safe_int

MAX_PAGE_SIZE = 100


def _eq(column, choices=None, virtual=()):
    return field(default=None, metadata={"column": column, "op": "eq", "choices": choices, "virtual": virtual})


def _since(column):
    return field(default=None, metadata={"column": column, "op": "gte"})


def _until(column):
    return field(default=None, metadata={"column": column, "op": "until"})


@dataclass
class ListOptions:
    model = None  # set by subclasses

    page: int = 1
    limit: int = 10

    @classmethod
    def from_args(cls, args, default_limit: int = 10):
        page = safe_int(args.get("page")) or 1
        limit = safe_int(args.get("limit")) or default_limit
        values = {"page": max(page, 1), "limit": min(max(limit, 1), MAX_PAGE_SIZE)}

        for f in fields(cls):
            if "column" not in f.metadata:
                continue
            raw = (args.get(f.name) or "").strip()
            if not raw or raw == "all":
                continue
            if f.metadata["op"] in ("gte", "until"):
                values[f.name] = parse_datetime(raw, f.name)
            else:
                choices = f.metadata.get("choices")
                if choices and raw not in choices:
                    raise ValidationError(f"{f.name} must be one of: {', '.join(choices)}")
                values[f.name] = raw
        return cls(**values)

    def clauses(self) -> list:
        out = []
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None or "column" not in f.metadata:
                continue
            if value in f.metadata.get("virtual", ()):
                continue  # handled by the subclass
            column = getattr(self.model, f.metadata["column"])
            op = f.metadata["op"]
            if op == "eq":
                out.append(column == value)
            elif op == "gte":
                out.append(column >= value)
            elif op == "until":
                # a bare date means "through the end of that day"
                if value == datetime(value.year, value.month, value.day):
                    out.append(column < value + timedelta(days=1))
                else:
                    out.append(column <= value)
        return out

    def build(self, query):
        clauses = self.clauses()
        return query.filter(and_(*clauses)) if clauses else query

    def paginate(self, query):
        total = query.order_by(None).count()
        rows = query.offset((self.page - 1) * self.limit).limit(self.limit).all()
        pagination = {
            "page": self.page,
            "limit": self.limit,
            "total": total,
            "pages": (total + self.limit - 1) // self.limit,
        }
        return rows, pagination


def open_obligation_clause():
    """One-time expenses still active, or live recursive occurrences not yet paid."""
    return or_(
        and_(Expense.type == "one_time", Expense.status == "active"),
        and_(
            Expense.type == "recursive",
            Expense.status.in_(("pending", "overdue")),
            Expense.is_active.is_(True),
        ),
    )


@dataclass
class ExpenseQuery(ListOptions):
    model = Expense

    # "open" is accepted in addition to the stored statuses
    status: str | None = _eq("status", EXPENSE_STATUSES + ("open",), virtual=("open",))
    priority: str | None = _eq("priority", EXPENSE_PRIORITIES)
    category: str | None = _eq("category")
    type: str | None = _eq("type", EXPENSE_TYPES)
    start_date: datetime | None = _since("due_date")
    end_date: datetime | None = _until("due_date")

    def clauses(self) -> list:
        out = super().clauses()
        if self.status == "open":
            out.append(open_obligation_clause())
        return out


@dataclass
class InvoiceQuery(ListOptions):
    model = Invoice

    status: str | None = _eq("status", INVOICE_STATUSES)
    category: str | None = _eq("category")
    vendor_name: str | None = _eq("vendor_name")
    start_date: datetime | None = _since("due_date")
    end_date: datetime | None = _until("due_date")
