"""
Pytest configuration and fixtures for the creator ledger tests
"""
import os
import tempfile
from decimal import Decimal

# config.py refuses to load without a SECRET_KEY and logger.py opens its log files on import
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("FLASK_ENV", "testing")
os.environ.setdefault("LOG_DIR", os.path.join(tempfile.gettempdir(), "creator_ledger_test_logs"))

import pytest
from flask import g
from flask_login import FlaskLoginClient

from app import create_app
from config import TestingConfig
from extensions import db
from models import User, Category, Post, Wallet
from wallet.paypal import PayoutSubmission, PayoutStatus, PayoutItem


class FakePayoutGateway:
    """In-memory stand-in for PayPalPayoutClient."""

    def __init__(self):
        self.submissions = []
        self.status_requests = []
        self.fail_with = None
        self.next_batch_id = None
        self.statuses = {}

    def submit_payout(self, email, amount, currency="USD"):
        self.submissions.append((email, Decimal(str(amount)), currency))
        if self.fail_with is not None:
            raise self.fail_with
        batch_id = self.next_batch_id or f"batch-{len(self.submissions)}"
        return PayoutSubmission(batch_id=batch_id, status="PENDING", payout_item_id=f"item-{len(self.submissions)}")

    def set_item_status(self, batch_id, transaction_status, error_message=None):
        self.statuses[batch_id] = PayoutStatus(
            batch_id=batch_id,
            status="SUCCESS" if transaction_status == "SUCCESS" else "PROCESSING",
            items=[PayoutItem(transaction_status=transaction_status, error_message=error_message)],
        )

    def get_payout_status(self, batch_id):
        self.status_requests.append(batch_id)
        result = self.statuses.get(batch_id)
        if isinstance(result, Exception):
            raise result
        if result is None:
            return PayoutStatus(batch_id=batch_id, status="PENDING", items=[PayoutItem(transaction_status="PENDING")])
        return result


@pytest.fixture(scope="function")
def app():
    """
    Flask app on an in-memory SQLite database with a fake payout gateway
    """
    app = create_app(TestingConfig)
    app.test_client_class = FlaskLoginClient

    # Requests reuse the fixture's app context, so drop the user Flask-Login cached in g
    @app.before_request
    def reset_cached_login():
        g.pop("_login_user", None)

    with app.app_context():
        db.create_all()
        app.extensions["payout_gateway"] = FakePayoutGateway()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def gateway(app):
    return app.extensions["payout_gateway"]


@pytest.fixture
def make_user(app):
    def _make_user(username, role="user", is_creator=False):
        user = User(username=username, email=f"{username}@example.com", role=role, is_creator=is_creator)
        db.session.add(user)
        db.session.commit()
        return user
    return _make_user


@pytest.fixture
def admin(make_user):
    return make_user("admin", role="admin")


@pytest.fixture
def creator(make_user):
    return make_user("creator", is_creator=True)


@pytest.fixture
def make_wallet(app):
    def _make_wallet(user, balance="0", paypal_email=None):
        wallet = Wallet(
            creator_id=user.id,
            balance=Decimal(balance),
            paypal_email=paypal_email,
            paypal_verified=paypal_email is not None,
        )
        db.session.add(wallet)
        db.session.commit()
        return wallet
    return _make_wallet


@pytest.fixture
def make_post(app):
    def _make_post(user, views=0, title="A post"):
        post = Post(user_id=user.id if user else None, title=title, view_count=views)
        db.session.add(post)
        db.session.commit()
        return post
    return _make_post


@pytest.fixture
def chain(app):
    """A (1) -> B (2) -> C (3) -> D (4), created straight through the ORM."""
    nodes = {}
    parent_id = None
    for level, name in enumerate(["A", "B", "C", "D"], start=1):
        category = Category(name=name, level=level, parent_id=parent_id)
        db.session.add(category)
        db.session.commit()
        nodes[name] = category
        parent_id = category.id
    return nodes
