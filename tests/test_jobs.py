"""
Scheduled entrypoints: Celery tasks, beat schedule and Flask CLI commands
"""
from decimal import Decimal

import pytest

from extensions import db
from models import User, Wallet, Withdrawal
from worker import tasks
from worker.celery_app import celery_app


@pytest.fixture
def task_app(app):
    tasks._flask_app = app
    yield app
    tasks._flask_app = None


def test_beat_schedule(app):
    schedule = celery_app.conf.beat_schedule
    earnings = schedule["calculate-daily-earnings"]
    reconcile = schedule["reconcile-withdrawals"]

    assert earnings["task"] == "ledger.calculate_daily_earnings"
    assert earnings["schedule"].hour == {0}
    assert earnings["schedule"].minute == {5}
    assert reconcile["task"] == "ledger.update_withdrawal_statuses"
    assert reconcile["schedule"].minute == {0, 30}


def test_earnings_task_runs_in_app_context(task_app, creator, make_wallet, make_post):
    make_wallet(creator)
    make_post(creator, views=4)

    result = tasks.calculate_daily_earnings()

    assert result["credited"] == 1
    assert result["errors"] == 0
    db.session.expire_all()
    assert Decimal(str(Wallet.query.filter_by(creator_id=creator.id).one().balance)) == Decimal("8.00")


def test_reconcile_task(task_app, creator, make_wallet, gateway):
    make_wallet(creator, balance="20", paypal_email="c@paypal.example")
    withdrawal = Withdrawal(
        creator_id=creator.id,
        amount=Decimal("5"),
        status="PROCESSING",
        paypal_batch_id="b1",
    )
    db.session.add(withdrawal)
    db.session.commit()
    gateway.set_item_status("b1", "SUCCESS")

    summary = tasks.update_withdrawal_statuses()

    assert summary["completed"] == 1
    db.session.expire_all()
    assert db.session.get(Withdrawal, withdrawal.id).status == "COMPLETED"


def test_cli_calculate_earnings(app, creator, make_wallet, make_post):
    make_wallet(creator)
    make_post(creator, views=1)

    result = app.test_cli_runner().invoke(args=["calculate-earnings"])

    assert result.exit_code == 0
    assert "Credited 1 posts" in result.output


def test_cli_reconcile(app):
    result = app.test_cli_runner().invoke(args=["reconcile-withdrawals"])
    assert result.exit_code == 0
    assert "checked=0" in result.output


def test_cli_promote_user(app, make_user):
    user = make_user("alice")
    runner = app.test_cli_runner()

    assert runner.invoke(args=["promote-user", "alice"]).exit_code == 0
    assert runner.invoke(args=["promote-user", "alice", "--creator"]).exit_code == 0
    assert runner.invoke(args=["promote-user", "nobody"]).exit_code != 0

    db.session.expire_all()
    user = db.session.get(User, user.id)
    assert user.role == "admin"
    assert user.is_creator is True
