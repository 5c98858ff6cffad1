import os
from decimal import Decimal

os.environ.setdefault("SCHEDULER_ENABLED", "false")

import pytest  # noqa: E402
from flask_jwt_extended import create_access_token  # noqa: E402

from app import create_app  # noqa: E402
from skyinvest.config import Config  # noqa: E402
from skyinvest.extensions import db  # noqa: E402
from skyinvest.models import Business, User  # noqa: E402

ADMIN_EMAIL = "admin@skyinvest.test"


class IsolatedConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret-key-for-the-suite-only"
    JWT_SECRET_KEY = "test-jwt-secret-key-long-enough-for-hs256"
    SCHEDULER_ENABLED = False
    DEFAULT_ADMIN_EMAIL = ADMIN_EMAIL
    DEFAULT_ADMIN_PASSWORD = "admin-password"
    DEFAULT_PAGE_SIZE = 10


@pytest.fixture()
def app(tmp_path):
    config = type("SuiteConfig", (IsolatedConfig,), {
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'skyinvest-test.db'}",
    })
    app = create_app(config)
    with app.app_context():
        yield app
        db.session.remove()
        db.engine.dispose()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def admin(app):
    return User.query.filter_by(email=ADMIN_EMAIL).one()


@pytest.fixture()
def make_user(app):
    counter = {"n": 0}

    def _make(user_type="investor", name=None):
        counter["n"] += 1
        user = User(
            name=name or f"{user_type.title()} {counter['n']}",
            email=f"{user_type}{counter['n']}@skyinvest.test",
            password="not-used",
            user_type=user_type,
        )
        db.session.add(user)
        db.session.commit()
        return user

    return _make


@pytest.fixture()
def make_business(app):
    def _make(total=100, remaining=None, share_value=Decimal("10.00"), minimum=1,
              status="active", type="public", entrepreneur=None, title="Sky Farm"):
        business = Business(
            entrepreneur_id=entrepreneur.id if entrepreneur else None,
            title=title,
            description="A test offering",
            total_shares=total,
            remaining_shares=total if remaining is None else remaining,
            share_value=share_value,
            minimum_shares_per_request=minimum,
            status=status,
            type=type,
        )
        db.session.add(business)
        db.session.commit()
        return business

    return _make


@pytest.fixture()
def auth_headers(app):
    def _headers(user):
        token = create_access_token(
            identity=str(user.id),
            additional_claims={"user_type": user.user_type},
        )
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture()
def admin_headers(admin, auth_headers):
    return auth_headers(admin)
