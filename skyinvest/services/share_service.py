# services/share_service.py
"""
Share allocation against a public business's inventory, plus the admin side of
publishing offerings.

``remaining_shares`` is never written from a value read earlier in the request.
Every change goes through a conditional UPDATE (``WHERE remaining_shares >= n``
or an optimistic guard on the previously read totals) so concurrent approvals
for the same business cannot over-allocate.
"""
from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy import func

from skyinvest.errors import CapacityError, ConflictError, NotFoundError, StateError, ValidationError
from skyinvest.extensions import db
from skyinvest.models import (
    BUSINESS_STATUSES,
    DECISION_STATUSES,
    Business,
    Category,
    Investment,
    ShareRequest,
    User,
)
from skyinvest.services.notifications import notify
from skyinvest.utils.parsing import parse_amount, parse_choice, parse_positive_int, pick, safe_int

logger = logging.getLogger(__name__)


# ----------------------------- lookups ----------------------------- #
def _get_or_404(model, row_id, label: str):
    row = db.session.get(model, row_id) if row_id is not None else None
    if row is None:
        raise NotFoundError(f"{label} not found")
    return row


def get_public_business(business_id, require_active: bool = False) -> Business:
    q = Business.query.filter_by(id=business_id, type="public")
    if require_active:
        q = q.filter_by(status="active")
    business = q.first()
    if business is None:
        raise NotFoundError("Business not found or not active" if require_active else "Business not found")
    return business


def _current_remaining(business_id: int) -> int:
    return db.session.query(Business.remaining_shares).filter(Business.id == business_id).scalar() or 0


# ----------------------------- investor side ----------------------------- #
def request_shares(business_id, investor_id, requested_shares, require_active: bool = False) -> ShareRequest:
    """
    Record an investor's request for shares. Nothing is reserved here: the
    remaining-shares check is advisory and is repeated authoritatively at approval.
    """
    shares = parse_positive_int(requested_shares, "requested_shares")
    if not investor_id:
        raise ValidationError("investor_id is required")
    _get_or_404(User, investor_id, "Investor")
    business = get_public_business(business_id, require_active=require_active)

    minimum = business.minimum_shares_per_request or 1
    if shares < minimum:
        raise ValidationError(f"Minimum shares per request is {minimum}")
    if shares > business.remaining_shares:
        raise CapacityError(f"Only {business.remaining_shares} shares remaining")

    duplicate = ShareRequest.query.filter_by(
        investor_id=investor_id, business_id=business.id, status="pending"
    ).first()
    if duplicate:
        raise ConflictError("You already have a pending share request for this business")

    share_value = Decimal(str(business.share_value))
    share_request = ShareRequest(
        investor_id=investor_id,
        business_id=business.id,
        requested_shares=shares,
        share_value=share_value,
        total_amount=share_value * shares,
        status="pending",
    )
    db.session.add(share_request)
    db.session.commit()
    logger.info("Share request #%s: investor %s asked for %s shares of business %s",
                share_request.id, investor_id, shares, business.id)

    if business.entrepreneur_id:
        notify(
            business.entrepreneur_id,
            "share_request",
            "Share Request",
            f"An investor requested {shares} shares of {business.title}",
            share_request.id,
        )
    return share_request


# ----------------------------- admin decisions ----------------------------- #
def invest_directly(business_id, investor_id, amount) -> Investment:
    """
    Record a money pledge against an active public offering. It allocates no
    shares; the investment waits as pending until an admin decides it.
    """
    value = parse_amount(amount, "amount", allow_zero=False)
    _get_or_404(User, investor_id, "Investor")
    business = get_public_business(business_id, require_active=True)

    duplicate = Investment.query.filter_by(
        investor_id=investor_id, business_id=business.id, status="pending"
    ).first()
    if duplicate:
        raise ConflictError("You already have a pending investment for this business")

    investment = Investment(investor_id=investor_id, business_id=business.id, amount=value, status="pending")
    db.session.add(investment)
    db.session.commit()
    logger.info("Investment #%s: investor %s pledged %s to business %s",
                investment.id, investor_id, value, business.id)

    if business.entrepreneur_id:
        notify(
            business.entrepreneur_id,
            "investment_request",
            "New Investment Request",
            f"An investor wants to invest {value} in {business.title}",
            investment.id,
        )
    return investment


def approve_share_request(share_request_id, approved_shares=None) -> tuple[ShareRequest, Investment]:
    """
    pending -> approved. Claims the request, allocates the shares and records
    the Investment in one transaction; any failure leaves nothing behind.
    """
    share_request = _get_or_404(ShareRequest, share_request_id, "Share request")
    if share_request.status != "pending":
        raise StateError(f"Share request is already {share_request.status}")

    if approved_shares is None:
        shares = share_request.requested_shares
    else:
        shares = parse_positive_int(approved_shares, "approved_shares")
    if shares > share_request.requested_shares:
        raise ValidationError("Approved shares cannot exceed requested shares")

    business = _get_or_404(Business, share_request.business_id, "Business")

    try:
        claimed = ShareRequest.query.filter(
            ShareRequest.id == share_request.id,
            ShareRequest.status == "pending",
        ).update(
            {"status": "approved", "approved_shares": shares, "decided_at": datetime.utcnow()},
            synchronize_session=False,
        )
        if not claimed:
            raise StateError("Share request is no longer pending")

        allocated = Business.query.filter(
            Business.id == business.id,
            Business.remaining_shares >= shares,
        ).update(
            {"remaining_shares": Business.remaining_shares - shares},
            synchronize_session=False,
        )
        if not allocated:
            raise CapacityError(
                f"Cannot approve {shares} shares: only {_current_remaining(business.id)} remaining"
            )

        investment = Investment(
            investor_id=share_request.investor_id,
            business_id=business.id,
            share_request_id=share_request.id,
            shares=shares,
            amount=Decimal(str(share_request.share_value)) * shares,
            status="approved",
        )
        db.session.add(investment)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info("Share request #%s approved for %s shares (business %s)", share_request.id, shares, business.id)

    notify(
        share_request.investor_id,
        "share_approved",
        "Share Request Approved",
        f"Your request for {shares} shares of {business.title} has been approved",
        share_request.id,
    )
    if business.entrepreneur_id:
        notify(
            business.entrepreneur_id,
            "share_approved",
            "Shares Allocated",
            f"{shares} shares of {business.title} were allocated to an investor",
            share_request.id,
        )
    return share_request, investment


def reject_share_request(share_request_id, reason: str | None = None) -> ShareRequest:
    share_request = _get_or_404(ShareRequest, share_request_id, "Share request")
    if share_request.status != "pending":
        raise StateError(f"Share request is already {share_request.status}")

    reason = (reason or "").strip() or "No reason provided"
    try:
        updated = ShareRequest.query.filter(
            ShareRequest.id == share_request.id,
            ShareRequest.status == "pending",
        ).update(
            {"status": "rejected", "rejection_reason": reason, "decided_at": datetime.utcnow()},
            synchronize_session=False,
        )
        if not updated:
            raise StateError("Share request is no longer pending")
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    notify(
        share_request.investor_id,
        "share_rejected",
        "Share Request Rejected",
        f"Your share request has been rejected. Reason: {reason}",
        share_request.id,
    )
    return share_request


# ----------------------------- offerings ----------------------------- #
def _offering_terms(data: dict) -> dict:
    """Validate the share terms an admin sets when publishing an offering."""
    total = parse_positive_int(pick(data, "total_shares", "totalShares"), "total_shares")
    value = parse_amount(pick(data, "share_value", "shareValue"), "share_value", allow_zero=False)
    raw_min = pick(data, "minimum_shares_per_request", "minimumSharesPerRequest")
    minimum = parse_positive_int(raw_min, "minimum_shares_per_request") if raw_min not in (None, "") else 1
    if minimum > total:
        raise ValidationError("minimum_shares_per_request cannot exceed total_shares")
    return {"total_shares": total, "share_value": value, "minimum_shares_per_request": minimum}


def rescale_remaining(remaining: int, old_total: int, new_total: int) -> int:
    """
    Proportional floor rescale used when an admin edits total_shares.
    Approximate: it does not reconcile shares already sold.
    """
    if old_total <= 0:
        return new_total
    return (remaining * new_total) // old_total


def create_public_business(data: dict, entrepreneur_id: int | None = None) -> Business:
    title = (data.get("title") or "").strip()
    description = (data.get("description") or "").strip()
    if not title or not description:
        raise ValidationError("Title, description, total shares, and share value are required")
    terms = _offering_terms(data)

    business = Business(
        entrepreneur_id=entrepreneur_id,
        title=title,
        category=(data.get("category") or "").strip() or None,
        description=description,
        remaining_shares=terms["total_shares"],
        status="active",
        type="public",
        **terms,
    )
    db.session.add(business)
    db.session.commit()
    logger.info("Public business #%s created with %s shares", business.id, business.total_shares)
    return business


def submit_business(entrepreneur_id: int, data: dict) -> Business:
    title = (data.get("title") or "").strip()
    if not title:
        raise ValidationError("title is required")
    category = (data.get("category") or "").strip() or None
    category_id = pick(data, "category_id", "categoryId")
    if category_id not in (None, ""):
        picked = _get_or_404(Category, safe_int(category_id), "Category")
        category_id, category = picked.id, picked.name
    else:
        category_id = None
    submission = Business(
        entrepreneur_id=entrepreneur_id,
        title=title,
        category=category,
        category_id=category_id,
        description=(data.get("description") or "").strip() or None,
        status="pending",
        type="submission",
    )
    db.session.add(submission)
    db.session.commit()
    return submission


def _get_pending_submission(submission_id) -> Business:
    submission = _get_or_404(Business, submission_id, "Submission")
    if submission.type != "submission" or submission.status != "pending":
        raise StateError("Can only review pending submissions")
    return submission


def approve_submission(submission_id, data: dict) -> Business:
    """Publish a pending submission as a fresh public, active offering."""
    submission = _get_pending_submission(submission_id)
    description = (data.get("description") or "").strip()
    if not description:
        raise ValidationError("Description, total shares, and share value are required")
    terms = _offering_terms(data)

    try:
        claimed = Business.query.filter(
            Business.id == submission.id,
            Business.status == "pending",
        ).update({"status": "approved"}, synchronize_session=False)
        if not claimed:
            raise StateError("Can only review pending submissions")

        public = Business(
            entrepreneur_id=submission.entrepreneur_id,
            title=submission.title,
            category=submission.category,
            category_id=submission.category_id,
            description=description,
            remaining_shares=terms["total_shares"],
            status="active",
            type="public",
            submission_id=submission.id,
            **terms,
        )
        db.session.add(public)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    notify(
        public.entrepreneur_id,
        "business_status",
        "Business Approved",
        f'Your business "{public.title}" has been approved and is now live for investors!',
        public.id,
    )
    return public


def reject_submission(submission_id, reason: str | None = None) -> Business:
    submission = _get_pending_submission(submission_id)
    reason = (reason or "").strip() or "Application rejected by admin"
    submission.status = "rejected"
    submission.rejection_reason = reason
    db.session.commit()

    notify(
        submission.entrepreneur_id,
        "business_status",
        "Business Application Rejected",
        f"Your business application has been rejected. Reason: {reason}",
        submission.id,
    )
    return submission


def update_public_business(business_id, data: dict) -> Business:
    business = _get_or_404(Business, business_id, "Business")
    if business.type != "public":
        raise StateError("Can only update public listings")

    raw_total = pick(data, "total_shares", "totalShares")
    new_total = parse_positive_int(raw_total, "total_shares") if raw_total not in (None, "") else None

    raw_min = pick(data, "minimum_shares_per_request", "minimumSharesPerRequest")
    if raw_min not in (None, ""):
        minimum = parse_positive_int(raw_min, "minimum_shares_per_request")
        if minimum > (new_total if new_total is not None else business.total_shares):
            raise ValidationError("minimum_shares_per_request cannot exceed total_shares")
        business.minimum_shares_per_request = minimum

    if data.get("title"):
        business.title = str(data["title"]).strip()
    if "category" in data:
        business.category = (data.get("category") or "").strip() or None
    if data.get("description"):
        business.description = str(data["description"]).strip()
    raw_value = pick(data, "share_value", "shareValue")
    if raw_value not in (None, ""):
        business.share_value = parse_amount(raw_value, "share_value", allow_zero=False)
    if data.get("status"):
        business.status = parse_choice(data["status"], "status", BUSINESS_STATUSES)

    try:
        if new_total is not None and new_total != business.total_shares:
            old_total, old_remaining = business.total_shares, business.remaining_shares
            rescaled = Business.query.filter(
                Business.id == business.id,
                Business.total_shares == old_total,
                Business.remaining_shares == old_remaining,
            ).update(
                {
                    "total_shares": new_total,
                    "remaining_shares": rescale_remaining(old_remaining, old_total, new_total),
                },
                synchronize_session=False,
            )
            if not rescaled:
                raise ConflictError("Share inventory changed while updating; retry the edit")
            logger.info("Business #%s total_shares %s -> %s (remaining rescaled from %s)",
                        business.id, old_total, new_total, old_remaining)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return business


def set_investment_status(investment_id, status) -> Investment:
    investment = _get_or_404(Investment, investment_id, "Investment")
    investment.status = parse_choice(status, "status", DECISION_STATUSES)
    db.session.commit()
    return investment


# ----------------------------- dashboard ----------------------------- #
def platform_stats() -> dict:
    """Headline counts for the admin dashboard."""
    funding = db.session.query(
        func.coalesce(func.sum(Business.total_shares * Business.share_value), 0)
    ).filter(Business.type == "public").scalar()
    invested = db.session.query(
        func.coalesce(func.sum(Investment.amount), 0)
    ).filter(Investment.status == "approved").scalar()

    return {
        "total_users": User.query.filter(User.user_type != "admin").count(),
        "total_businesses": Business.query.count(),
        "total_investments": Investment.query.count(),
        "active_businesses": Business.query.filter_by(status="active").count(),
        "pending_investments": Investment.query.filter_by(status="pending").count(),
        "entrepreneurs": User.query.filter_by(user_type="entrepreneur").count(),
        "investors": User.query.filter_by(user_type="investor").count(),
        "total_funding_requested": float(funding or 0),
        "total_investment_amount": float(invested or 0),
    }
