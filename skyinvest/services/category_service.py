# services/category_service.py
from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from skyinvest.errors import ConflictError, NotFoundError, ValidationError
from skyinvest.extensions import db
from skyinvest.models import Business, Category
from skyinvest.utils.parsing import parse_amount, pick

logger = logging.getLogger(__name__)


def get_category(category_id) -> Category:
    category = db.session.get(Category, category_id) if category_id is not None else None
    if category is None:
        raise NotFoundError("Category not found")
    return category


def list_categories() -> list[Category]:
    return Category.query.order_by(Category.name.asc()).all()


def _commit_named(category: Category) -> Category:
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Category with this name already exists")
    return category


def create_category(data: dict) -> Category:
    name = (data.get("name") or "").strip()
    fee = pick(data, "registration_fee", "registrationFee")
    if not name or fee in (None, ""):
        raise ValidationError("Name and registration fee are required")
    if Category.query.filter_by(name=name).first() is not None:
        raise ConflictError("Category with this name already exists")

    category = Category(
        name=name,
        description=(data.get("description") or "").strip() or None,
        registration_fee=parse_amount(fee, "registration_fee"),
    )
    db.session.add(category)
    _commit_named(category)
    logger.info("Category #%s created: %s", category.id, category.name)
    return category


def update_category(category_id, data: dict) -> Category:
    category = get_category(category_id)
    if "name" in data:
        name = (data.get("name") or "").strip()
        if not name:
            raise ValidationError("name cannot be empty")
        category.name = name
    if "description" in data:
        category.description = (data.get("description") or "").strip() or None
    fee = pick(data, "registration_fee", "registrationFee")
    if fee is not None:
        category.registration_fee = parse_amount(fee, "registration_fee")
    return _commit_named(category)


def delete_category(category_id) -> None:
    """Offerings filed under the category keep their category label."""
    category = get_category(category_id)
    Business.query.filter(Business.category_id == category.id).update(
        {"category_id": None}, synchronize_session=False
    )
    db.session.delete(category)
    db.session.commit()
    logger.info("Category #%s deleted", category_id)
