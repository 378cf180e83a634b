"""
Daily earnings aggregation
"""
from datetime import date
from decimal import Decimal

from extensions import db
from models import DailyEarning, EarningEntry, Post, Wallet
from wallet.earnings import DailyEarningProcessor, EarningsQueryHelper


TODAY = date(2026, 3, 14)


def wallet_balance(creator):
    db.session.expire_all()
    return Decimal(str(Wallet.query.filter_by(creator_id=creator.id).first().balance))


def test_views_are_credited_at_two_per_view(app, creator, make_wallet, make_post):
    make_wallet(creator, balance="1.50")
    post = make_post(creator, views=10)

    results = DailyEarningProcessor(today=TODAY).run()

    assert results == [{
        "creator_id": creator.id,
        "views_today": 10,
        "earning_today": 20.0,
        "total_balance": 21.5,
        "post_id": post.id,
    }]
    assert wallet_balance(creator) == Decimal("21.50")
    assert db.session.get(Post, post.id).view_count == 0


def test_same_day_runs_accumulate(app, creator, make_wallet, make_post):
    make_wallet(creator)
    post = make_post(creator, views=3)

    DailyEarningProcessor(today=TODAY).run()
    post = db.session.get(Post, post.id)
    post.view_count = 4
    db.session.commit()
    DailyEarningProcessor(today=TODAY).run()

    rows = DailyEarning.query.filter_by(creator_id=creator.id).all()
    assert len(rows) == 1
    assert rows[0].views_today == 7
    assert Decimal(str(rows[0].earning_today)) == Decimal("14.00")
    assert wallet_balance(creator) == Decimal("14.00")


def test_multiple_posts_share_one_daily_row_with_entries(app, creator, make_wallet, make_post):
    make_wallet(creator)
    first = make_post(creator, views=1, title="first")
    second = make_post(creator, views=2, title="second")

    results = DailyEarningProcessor(today=TODAY).run()

    assert [r["post_id"] for r in results] == [first.id, second.id]
    assert results[-1]["views_today"] == 3
    assert results[-1]["total_balance"] == 6.0

    daily = DailyEarning.query.filter_by(creator_id=creator.id, date=TODAY).one()
    assert daily.post_id == second.id
    entries = EarningEntry.query.filter_by(creator_id=creator.id).order_by(EarningEntry.id).all()
    assert [(e.post_id, e.views, e.credited) for e in entries] == [(first.id, 1, True), (second.id, 2, True)]


def test_missing_wallet_drops_earning_and_keeps_going(app, make_user, make_wallet, make_post):
    no_wallet = make_user("nowallet", is_creator=True)
    with_wallet = make_user("withwallet", is_creator=True)
    make_wallet(with_wallet)
    lost_post = make_post(no_wallet, views=5)
    make_post(with_wallet, views=1)

    processor = DailyEarningProcessor(today=TODAY)
    results = processor.run()

    assert [r["creator_id"] for r in results] == [with_wallet.id]
    assert processor.errors == []
    assert wallet_balance(with_wallet) == Decimal("2.00")

    entry = EarningEntry.query.filter_by(post_id=lost_post.id).one()
    assert entry.credited is False
    assert db.session.get(Post, lost_post.id).view_count == 0


def test_posts_without_creator_are_skipped(app, creator, make_wallet, make_post):
    make_wallet(creator)
    make_post(None, views=50)

    assert DailyEarningProcessor(today=TODAY).run() == []
    assert DailyEarning.query.count() == 0


def test_earnings_work_with_atomic_lock_mode(app, creator, make_wallet, make_post):
    app.config["WALLET_LOCK_MODE"] = "atomic"
    make_wallet(creator, balance="1")
    make_post(creator, views=2)

    results = DailyEarningProcessor(today=TODAY).run()
    assert results[0]["total_balance"] == 5.0


def test_custom_rate(app, creator, make_wallet, make_post):
    make_wallet(creator)
    make_post(creator, views=3)

    DailyEarningProcessor(rate="0.5", today=TODAY).run()
    assert wallet_balance(creator) == Decimal("1.50")


def test_preview_is_read_only(app, creator, make_post):
    post = make_post(creator, views=6, title="Preview me")

    preview = EarningsQueryHelper.preview_post_earnings()

    assert preview == [{
        "author": "creator",
        "post_id": post.id,
        "title": "Preview me",
        "view_count": 6,
        "paid": 12.0,
    }]
    assert db.session.get(Post, post.id).view_count == 6


def test_daily_earnings_history_newest_first(app, creator, make_wallet, make_post):
    make_wallet(creator)
    post = make_post(creator, views=1)
    DailyEarningProcessor(today=date(2026, 3, 1)).run()
    db.session.get(Post, post.id).view_count = 2
    db.session.commit()
    DailyEarningProcessor(today=date(2026, 3, 2)).run()

    history = EarningsQueryHelper.get_daily_earnings(creator.id)
    assert [row.date for row in history] == [date(2026, 3, 2), date(2026, 3, 1)]
    assert history[0].to_dict()["earningToday"] == 4.0
