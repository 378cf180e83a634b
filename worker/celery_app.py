"""
Celery application for the scheduled ledger jobs.

Broker/backend: Redis (REDIS_URL env).
Beat schedule: daily earnings at 00:05 UTC, withdrawal reconciliation every 30 minutes.

    celery -A worker.celery_app worker --beat --loglevel=info
"""
from celery import Celery
from celery.schedules import crontab

from config import Config


celery_app = Celery(
    "creator_ledger",
    broker=Config.REDIS_URL,
    backend=Config.REDIS_URL,
    include=["worker.tasks"],
)

celery_app.conf.update(
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,
    task_default_queue="ledger",
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    beat_schedule={
        "calculate-daily-earnings": {
            "task": "ledger.calculate_daily_earnings",
            "schedule": crontab(hour=0, minute=5),
        },
        "reconcile-withdrawals": {
            "task": "ledger.update_withdrawal_statuses",
            "schedule": crontab(minute="*/30"),
        },
    },
)
