from celery import Celery
from celery.schedules import crontab

from app.config import settings

celery_app = Celery("estate_payments")
celery_app.conf.update(
    broker_url=settings.celery_broker_url,
    timezone="UTC",
    task_acks_late=True,
)
celery_app.conf.beat_schedule = {
    "refresh-late-fees": {
        "task": "app.tasks.payments.refresh_late_fees",
        "schedule": crontab(hour=0, minute=15),
    },
}
celery_app.autodiscover_tasks(["app.tasks"])
