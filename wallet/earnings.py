import logging
from datetime import datetime, timezone, date
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from models import DailyEarning, EarningEntry, Post, User, money
from posts.store import PostStore
from wallet.balance import BalanceManager
from wallet.config import WalletConfig


logger = logging.getLogger(__name__)


class DailyEarningProcessor:
    """
    Turns each post's accumulated views into creator earnings for the day:
    upserts the (creator, date) DailyEarning, writes an EarningEntry line,
    credits the wallet and restarts the post's view counter. Posts are
    committed one at a time so a bad row does not undo the rest of the run.
    """

    def __init__(self, rate: Decimal = None, today: date = None):
        self.rate = Decimal(str(rate)) if rate is not None else WalletConfig.earning_rate()
        self.today = today or datetime.now(timezone.utc).date()
        self.results = []
        self.errors = []

    def run(self) -> List[dict]:
        posts = PostStore.find_posts_with_creators()
        logger.info(f"Calculating earnings for {len(posts)} posts on {self.today} at {self.rate} per view")

        for post in posts:
            try:
                result = self.process_post(post)
            except SQLAlchemyError as e:
                db.session.rollback()
                self.errors.append({"post_id": post.id, "error": str(e)})
                logger.error(f"Earning calculation failed for post {post.id}: {e}")
                continue
            if result is not None:
                self.results.append(result)

        logger.info(
            f"Earnings run for {self.today} done: {len(self.results)} credited, {len(self.errors)} failed"
        )
        return self.results

    def process_post(self, post: Post) -> Optional[dict]:
        views = int(post.view_count or 0)
        earning = WalletConfig.quantize(Decimal(views) * self.rate)
        creator_id = post.user_id

        with BalanceManager.locked_wallet(creator_id) as wallet:
            daily = DailyEarning.query.filter_by(creator_id=creator_id, date=self.today).first()
            if daily is None:
                daily = DailyEarning(
                    creator_id=creator_id,
                    date=self.today,
                    views_today=0,
                    earning_today=Decimal("0.00"),
                )
                db.session.add(daily)

            daily.views_today = (daily.views_today or 0) + views
            daily.earning_today = WalletConfig.quantize(Decimal(str(daily.earning_today or 0)) + earning)
            daily.post_id = post.id

            db.session.add(EarningEntry(
                creator_id=creator_id,
                post_id=post.id,
                date=self.today,
                views=views,
                earning=earning,
                credited=wallet is not None,
            ))

            if wallet is None:
                logger.warning(f"No wallet for creator {creator_id}; earning {earning} from post {post.id} dropped")
            else:
                BalanceManager.credit(wallet, earning)

            PostStore.reset_view_count(post)
            db.session.commit()

            if wallet is None:
                return None

            return {
                "creator_id": creator_id,
                "views_today": daily.views_today,
                "earning_today": money(daily.earning_today),
                "total_balance": money(wallet.balance),
                "post_id": post.id,
            }


class EarningsQueryHelper:

    @staticmethod
    def preview_post_earnings(rate: Decimal = None) -> List[dict]:
        """What the next earnings run would pay, per post. Read-only."""
        rate = Decimal(str(rate)) if rate is not None else WalletConfig.earning_rate()
        rows = (
            db.session.query(Post, User)
            .join(User, Post.user_id == User.id)
            .order_by(Post.id.asc())
            .all()
        )
        return [
            {
                "author": user.username,
                "post_id": post.id,
                "title": post.title,
                "view_count": post.view_count or 0,
                "paid": money(WalletConfig.quantize(Decimal(post.view_count or 0) * rate)),
            }
            for post, user in rows
        ]

    @staticmethod
    def get_daily_earnings(creator_id: int, limit: int = 30) -> List[DailyEarning]:
        return (
            DailyEarning.query
            .filter_by(creator_id=creator_id)
            .order_by(DailyEarning.date.desc())
            .limit(limit)
            .all()
        )
