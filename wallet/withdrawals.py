import logging
from decimal import Decimal, InvalidOperation
from typing import Dict, List

from sqlalchemy import update

from extensions import db
from models import Wallet, Withdrawal, WithdrawalStatus
from errors import ServiceError, NotFoundError, ValidationError, ConflictError, WithdrawalFailedError
from wallet.config import WalletConfig
from wallet.balance import BalanceManager
from wallet.notifications import NotificationSink
from wallet.paypal import get_payout_gateway
from logger import payouts_logger


logger = logging.getLogger(__name__)

# PayPal item statuses after which the money will not arrive
TERMINAL_FAILURE_STATUSES = {"FAILED", "RETURNED", "BLOCKED", "REFUNDED", "REVERSED", "DENIED"}
DEFAULT_FAILURE_REASON = "PayPal transaction failed"


# ==========================================================
#                  WITHDRAWAL VALIDATOR
# ==========================================================
class WithdrawalValidator:

    @staticmethod
    def parse_amount(amount) -> Decimal:
        try:
            value = Decimal(str(amount))
        except (InvalidOperation, ValueError, TypeError):
            raise ValidationError("Invalid withdrawal amount")

        if not value.is_finite() or value <= 0:
            raise ValidationError("Invalid withdrawal amount")

        minimum = WalletConfig.min_withdrawal()
        if value < minimum:
            raise ValidationError(f"Minimum withdrawal amount is ${format(minimum.normalize(), 'f')}")

        try:
            return WalletConfig.quantize(value)
        except InvalidOperation:
            raise ValidationError("Invalid withdrawal amount")

    @staticmethod
    def validate_wallet(wallet: Wallet, amount: Decimal):
        if wallet is None:
            raise NotFoundError("Wallet not found")

        if not wallet.paypal_email:
            raise ValidationError("Please link your PayPal account first")

        if amount > Decimal(str(wallet.balance or 0)):
            raise ConflictError("Insufficient balance")

        pending = Withdrawal.query.filter_by(
            creator_id=wallet.creator_id,
            status=WithdrawalStatus.PENDING.value,
        ).first()
        if pending is not None:
            raise ConflictError("You already have a pending withdrawal request")


# ==========================================================
#                  WITHDRAWAL PROCESSOR
# ==========================================================
class WithdrawalProcessor:
    """Debit-then-compensate withdrawals against the payout gateway."""

    @staticmethod
    def request_withdrawal(creator_id: int, amount) -> Withdrawal:
        amount = WithdrawalValidator.parse_amount(amount)

        # 1. Validate, debit and record PENDING in one commit
        with BalanceManager.locked_wallet(creator_id) as wallet:
            try:
                WithdrawalValidator.validate_wallet(wallet, amount)
                BalanceManager.debit(wallet, amount)
                withdrawal = Withdrawal(
                    creator_id=creator_id,
                    amount=amount,
                    status=WithdrawalStatus.PENDING.value,
                    paypal_email=wallet.paypal_email,
                )
                db.session.add(withdrawal)
                db.session.commit()
            except ServiceError:
                db.session.rollback()
                raise

        logger.info(f"Withdrawal {withdrawal.id} of {amount} recorded for creator {creator_id}, balance debited")

        # 2. Submit the payout outside any wallet lock
        try:
            submission = get_payout_gateway().submit_payout(
                withdrawal.paypal_email, amount, WalletConfig.currency()
            )
        except Exception as e:
            reason = str(e) or e.__class__.__name__
            payouts_logger.error(
                f"Payout submission failed for withdrawal {withdrawal.id} "
                f"(creator={creator_id}, amount={amount}): {reason}"
            )
            WithdrawalProcessor.fail_withdrawal(withdrawal, reason)
            raise WithdrawalFailedError(f"Withdrawal failed: {reason}", withdrawal_id=withdrawal.id)

        # 3. Hand over to reconciliation
        withdrawal.status = WithdrawalStatus.PROCESSING.value
        withdrawal.paypal_batch_id = submission.batch_id
        withdrawal.paypal_payout_item_id = submission.payout_item_id
        db.session.commit()

        payouts_logger.info(f"Withdrawal {withdrawal.id} processing under PayPal batch {submission.batch_id}")
        NotificationSink.notify_withdrawal_processing(creator_id, withdrawal.id, amount)
        return withdrawal

    @staticmethod
    def fail_withdrawal(withdrawal: Withdrawal, reason: str):
        """Mark FAILED and refund the amount in the same commit, then notify."""
        withdrawal.status = WithdrawalStatus.FAILED.value
        withdrawal.failure_reason = reason
        WithdrawalProcessor._refund_failed(withdrawal, reason)

    @staticmethod
    def _refund_failed(withdrawal: Withdrawal, reason: str):
        BalanceManager.refund(withdrawal.creator_id, withdrawal.amount)

        logger.warning(f"Withdrawal {withdrawal.id} failed and {withdrawal.amount} was refunded: {reason}")
        NotificationSink.notify_withdrawal_failed(withdrawal.creator_id, withdrawal.id, withdrawal.amount, reason)

    @staticmethod
    def _claim_processing(withdrawal: Withdrawal, status: str, failure_reason: str = None) -> bool:
        """
        Move a PROCESSING withdrawal to `status` with a guarded UPDATE. Returns
        False when another reconciliation run already finalised it.
        """
        values = {"status": status}
        if failure_reason is not None:
            values["failure_reason"] = failure_reason

        result = db.session.execute(
            update(Withdrawal)
            .where(
                Withdrawal.id == withdrawal.id,
                Withdrawal.status == WithdrawalStatus.PROCESSING.value,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            db.session.rollback()
            logger.info(f"Withdrawal {withdrawal.id} was already finalised elsewhere, skipping")
            return False

        db.session.expire(withdrawal, ["status", "failure_reason", "updated_at"])
        return True

    @staticmethod
    def complete_withdrawal(withdrawal: Withdrawal) -> bool:
        if not WithdrawalProcessor._claim_processing(withdrawal, WithdrawalStatus.COMPLETED.value):
            return False
        db.session.commit()

        logger.info(f"Withdrawal {withdrawal.id} completed")
        NotificationSink.notify_withdrawal_completed(withdrawal.creator_id, withdrawal.id, withdrawal.amount)
        return True

    @staticmethod
    def reconcile_failure(withdrawal: Withdrawal, reason: str) -> bool:
        """FAILED plus refund, applied at most once per withdrawal."""
        if not WithdrawalProcessor._claim_processing(withdrawal, WithdrawalStatus.FAILED.value, reason):
            return False
        WithdrawalProcessor._refund_failed(withdrawal, reason)
        return True

    @staticmethod
    def update_withdrawal_statuses() -> Dict[str, int]:
        """Reconcile PROCESSING withdrawals against PayPal; one failure never stops the batch."""
        summary = {"checked": 0, "completed": 0, "failed": 0, "still_processing": 0, "errors": 0}

        in_flight = (
            Withdrawal.query
            .filter(Withdrawal.status == WithdrawalStatus.PROCESSING.value)
            .filter(Withdrawal.paypal_batch_id.isnot(None))
            .order_by(Withdrawal.id.asc())
            .all()
        )
        if not in_flight:
            return summary

        gateway = get_payout_gateway()

        for withdrawal in in_flight:
            summary["checked"] += 1
            try:
                payout = gateway.get_payout_status(withdrawal.paypal_batch_id)
                item = payout.items[0] if payout.items else None
                transaction_status = (item.transaction_status or "").upper() if item else ""

                if transaction_status == "SUCCESS":
                    if WithdrawalProcessor.complete_withdrawal(withdrawal):
                        summary["completed"] += 1
                elif transaction_status in TERMINAL_FAILURE_STATUSES:
                    reason = (item.error_message if item else None) or DEFAULT_FAILURE_REASON
                    if WithdrawalProcessor.reconcile_failure(withdrawal, reason):
                        summary["failed"] += 1
                else:
                    summary["still_processing"] += 1

            except Exception as e:
                db.session.rollback()
                summary["errors"] += 1
                payouts_logger.error(
                    f"Failed to reconcile withdrawal {withdrawal.id} "
                    f"(batch={withdrawal.paypal_batch_id}): {e}"
                )

        logger.info(f"Withdrawal reconciliation finished: {summary}")
        return summary

    @staticmethod
    def get_withdrawal_history(creator_id: int) -> List[Withdrawal]:
        return (
            Withdrawal.query
            .filter_by(creator_id=creator_id)
            .order_by(Withdrawal.created_at.desc(), Withdrawal.id.desc())
            .all()
        )
