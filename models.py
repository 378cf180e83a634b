# models.py — Flask-SQLAlchemy models for categories, posts and the creator ledger
from datetime import datetime, timezone
from decimal import Decimal
import enum
from flask_login import UserMixin
from sqlalchemy import UniqueConstraint, Index, text
from extensions import db


def utcnow():
    return datetime.now(timezone.utc)


def money(value) -> float:
    return float(value) if value is not None else 0.0


# ===========================================================
# ENUM DEFINITIONS
# ===========================================================

class WithdrawalStatus(enum.Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class NotificationKind(enum.Enum):
    WITHDRAWAL_PROCESSING = "withdrawal_processing"
    WITHDRAWAL_COMPLETED = "withdrawal_completed"
    WITHDRAWAL_FAILED = "withdrawal_failed"


# ===========================================================
# BASE MIXIN FOR COMMON FIELDS
# ===========================================================

class BaseMixin:
    """Provides created_at and updated_at timestamps to inheriting models."""
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)


# ===========================================================
# USER (identity collaborator)
# ===========================================================

class User(UserMixin, db.Model, BaseMixin):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=True)
    role = db.Column(db.String(20), nullable=False, default="user", index=True)
    is_creator = db.Column(db.Boolean, nullable=False, default=False)
    is_active = db.Column(db.Boolean, default=True)

    wallet = db.relationship('Wallet', uselist=False, back_populates='creator')
    posts = db.relationship('Post', back_populates='user')

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def to_dict(self):
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "role": self.role,
            "isCreator": self.is_creator,
        }


# ===========================================================
# CATEGORY HIERARCHY
# ===========================================================

class Category(db.Model, BaseMixin):
    """Node of the 4-level category tree. Children are derived from parent_id."""
    __tablename__ = 'categories'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, index=True)
    level = db.Column(db.Integer, nullable=False, default=1)
    description = db.Column(db.String(255), nullable=True)
    # Plain integer reference: a removed parent may leave a dangling id behind.
    parent_id = db.Column(db.Integer, nullable=True, index=True)

    __table_args__ = (
        db.CheckConstraint('level >= 1 AND level <= 4', name='chk_category_level_range'),
    )

    def to_dict(self, children=None):
        data = {
            "id": self.id,
            "name": self.name,
            "level": self.level,
            "description": self.description,
            "parentId": self.parent_id,
        }
        if children is not None:
            data["children"] = children
        return data

    def __repr__(self):
        return f'<Category {self.id} L{self.level} {self.name}>'


# ===========================================================
# POSTS (partial, as consumed by the ledger)
# ===========================================================

class Post(db.Model, BaseMixin):
    __tablename__ = 'posts'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'), nullable=True, index=True)
    category_id = db.Column(db.Integer, nullable=True, index=True)
    title = db.Column(db.String(255), nullable=False)
    view_count = db.Column(db.Integer, nullable=False, default=0, server_default=text("0"))
    # Comma-joined category ids from root to leaf, e.g. "1,5,12,40"
    category_hierarchy = db.Column(db.String(255), nullable=True)

    user = db.relationship('User', back_populates='posts')

    def hierarchy_ids(self):
        if not self.category_hierarchy:
            return []
        return [int(part) for part in self.category_hierarchy.split(",") if part]

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "userId": self.user_id,
            "categoryId": self.category_id,
            "categoryHierarchy": self.hierarchy_ids(),
            "viewCount": self.view_count,
        }


# ===========================================================
# WALLET & WITHDRAWALS
# ===========================================================

class Wallet(db.Model, BaseMixin):
    __tablename__ = 'wallets'

    id = db.Column(db.Integer, primary_key=True)
    creator_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, unique=True, index=True)
    balance = db.Column(db.Numeric(precision=18, scale=2), nullable=False, default=Decimal("0.00"))
    paypal_email = db.Column(db.String(255), nullable=True)
    paypal_verified = db.Column(db.Boolean, nullable=False, default=False)

    creator = db.relationship('User', back_populates='wallet')

    __table_args__ = (
        db.CheckConstraint('balance >= 0', name='chk_wallet_balance_non_negative'),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "creatorId": self.creator_id,
            "balance": money(self.balance),
            "paypalEmail": self.paypal_email,
            "paypalVerified": self.paypal_verified,
        }


class Withdrawal(db.Model, BaseMixin):
    __tablename__ = 'withdrawals'

    id = db.Column(db.Integer, primary_key=True)
    creator_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    amount = db.Column(db.Numeric(precision=18, scale=2), nullable=False)
    status = db.Column(db.String(20), nullable=False, default=WithdrawalStatus.PENDING.value, index=True)
    paypal_batch_id = db.Column(db.String(128), nullable=True, index=True)
    paypal_payout_item_id = db.Column(db.String(128), nullable=True)
    paypal_email = db.Column(db.String(255), nullable=True)
    failure_reason = db.Column(db.Text, nullable=True)

    __table_args__ = (
        Index('idx_withdrawal_creator_created', 'creator_id', 'created_at'),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "creatorId": self.creator_id,
            "amount": money(self.amount),
            "status": self.status,
            "paypalBatchId": self.paypal_batch_id,
            "paypalPayoutItemId": self.paypal_payout_item_id,
            "paypalEmail": self.paypal_email,
            "failureReason": self.failure_reason,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }


# ===========================================================
# EARNINGS
# ===========================================================

class DailyEarning(db.Model):
    """One row per creator per calendar day, accumulated across posts."""
    __tablename__ = 'daily_earnings'

    id = db.Column(db.Integer, primary_key=True)
    creator_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    date = db.Column(db.Date, nullable=False, index=True)
    views_today = db.Column(db.Integer, nullable=False, default=0)
    earning_today = db.Column(db.Numeric(18, 2), nullable=False, default=Decimal("0.00"))
    # Last post processed for this day only
    post_id = db.Column(db.Integer, nullable=True)

    __table_args__ = (
        UniqueConstraint('creator_id', 'date', name='uq_daily_earning_creator_date'),
    )

    def to_dict(self):
        return {
            "creatorId": self.creator_id,
            "date": self.date.isoformat() if self.date else None,
            "viewsToday": self.views_today,
            "earningToday": money(self.earning_today),
            "postId": self.post_id,
        }


class EarningEntry(db.Model):
    """Per-post, per-run audit line behind a DailyEarning aggregate."""
    __tablename__ = 'earning_entries'

    id = db.Column(db.Integer, primary_key=True)
    creator_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    post_id = db.Column(db.Integer, nullable=False, index=True)
    date = db.Column(db.Date, nullable=False)
    views = db.Column(db.Integer, nullable=False, default=0)
    earning = db.Column(db.Numeric(18, 2), nullable=False, default=Decimal("0.00"))
    credited = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        Index('idx_earning_entry_creator_date', 'creator_id', 'date'),
    )


# ===========================================================
# NOTIFICATIONS
# ===========================================================

class Notification(db.Model):
    __tablename__ = 'notifications'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    kind = db.Column(db.String(50), nullable=False)
    payload = db.Column(db.JSON, nullable=True)
    is_read = db.Column(db.Boolean, default=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
