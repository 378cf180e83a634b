import logging
from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from models import Notification, NotificationKind


logger = logging.getLogger(__name__)


# ==========================================================
#                  NOTIFICATION SINK
# ==========================================================
class NotificationSink:
    """
    Fire-and-forget user notifications. Call only after the business change
    has been committed: a failed insert is rolled back and logged, never raised.
    """

    @staticmethod
    def notify(user_id: int, kind, payload: dict = None) -> bool:
        kind_value = kind.value if isinstance(kind, NotificationKind) else str(kind)
        try:
            db.session.add(Notification(user_id=user_id, kind=kind_value, payload=payload or {}))
            db.session.commit()
            return True
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Failed to record {kind_value} notification for user {user_id}: {e}")
            return False

    @staticmethod
    def notify_withdrawal_processing(user_id: int, withdrawal_id: int, amount):
        return NotificationSink.notify(user_id, NotificationKind.WITHDRAWAL_PROCESSING, {
            "withdrawal_id": withdrawal_id,
            "amount": str(amount),
            "message": f"Your withdrawal of ${amount} is being processed",
        })

    @staticmethod
    def notify_withdrawal_completed(user_id: int, withdrawal_id: int, amount):
        return NotificationSink.notify(user_id, NotificationKind.WITHDRAWAL_COMPLETED, {
            "withdrawal_id": withdrawal_id,
            "amount": str(amount),
            "message": f"Your withdrawal of ${amount} has been paid out",
        })

    @staticmethod
    def notify_withdrawal_failed(user_id: int, withdrawal_id: int, amount, reason: str):
        return NotificationSink.notify(user_id, NotificationKind.WITHDRAWAL_FAILED, {
            "withdrawal_id": withdrawal_id,
            "amount": str(amount),
            "reason": reason,
            "message": f"Your withdrawal of ${amount} failed and was refunded to your wallet",
        })
