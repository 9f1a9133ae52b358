"""Tests for Celery tasks."""

from unittest.mock import MagicMock, patch

import pytest

from app.services import payments as payments_service


class TestLateFeeTask:
    """Tests for payments.refresh_late_fees task."""

    def test_refresh_late_fees_success(self):
        mock_session = MagicMock()

        with patch("app.tasks.payments.SessionLocal", return_value=mock_session):
            with patch.object(
                payments_service.collection_payments, "refresh_late_fees", return_value=3
            ) as mock_refresh:
                from app.tasks.payments import refresh_late_fees

                assert refresh_late_fees() == 3

                mock_refresh.assert_called_once_with(mock_session)
                mock_session.rollback.assert_not_called()
                mock_session.close.assert_called_once()

    def test_refresh_late_fees_exception_rollback(self):
        mock_session = MagicMock()

        with patch("app.tasks.payments.SessionLocal", return_value=mock_session):
            with patch.object(
                payments_service.collection_payments,
                "refresh_late_fees",
                side_effect=Exception("Late fee error"),
            ):
                from app.tasks.payments import refresh_late_fees

                with pytest.raises(Exception, match="Late fee error"):
                    refresh_late_fees()

                mock_session.rollback.assert_called_once()
                mock_session.close.assert_called_once()

    def test_refresh_late_fees_is_scheduled(self):
        from app.celery_app import celery_app

        entry = celery_app.conf.beat_schedule["refresh-late-fees"]
        assert entry["task"] == "app.tasks.payments.refresh_late_fees"
