"""
Celery entrypoints for the ledger jobs. Each task runs inside a Flask app
context so the services see the same config and session as the web app.
"""
import logging

from worker.celery_app import celery_app

logger = logging.getLogger(__name__)

_flask_app = None


def get_flask_app():
    global _flask_app
    if _flask_app is None:
        from app import create_app
        _flask_app = create_app()
    return _flask_app


@celery_app.task(name="ledger.calculate_daily_earnings")
def calculate_daily_earnings() -> dict:
    from wallet.earnings import DailyEarningProcessor

    with get_flask_app().app_context():
        processor = DailyEarningProcessor()
        results = processor.run()
        logger.info(f"Scheduled earnings run credited {len(results)} posts")
        return {
            "date": processor.today.isoformat(),
            "credited": len(results),
            "errors": len(processor.errors),
        }


@celery_app.task(name="ledger.update_withdrawal_statuses")
def update_withdrawal_statuses() -> dict:
    from wallet.withdrawals import WithdrawalProcessor

    with get_flask_app().app_context():
        summary = WithdrawalProcessor.update_withdrawal_statuses()
        logger.info(f"Scheduled reconciliation: {summary}")
        return summary
