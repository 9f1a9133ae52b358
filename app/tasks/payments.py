import logging

from app.celery_app import celery_app
from app.db import SessionLocal
from app.services import payments as payments_service

logger = logging.getLogger(__name__)


@celery_app.task(name="app.tasks.payments.refresh_late_fees")
def refresh_late_fees():
    session = SessionLocal()
    try:
        updated = payments_service.collection_payments.refresh_late_fees(session)
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
    logger.info("Late fee refresh finished: %s payments updated", updated)
    return updated
