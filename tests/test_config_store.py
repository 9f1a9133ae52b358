from datetime import timedelta
from decimal import Decimal

import pytest

from app.config import settings
from app.models.domain_settings import DomainSetting, SettingDomain, SettingValueType
from app.models.payments import CollectionStatus
from app.services.config_store import (
    collections_config,
    grace_period_days,
    numbering_config,
    supply_config,
)
from app.services.errors import InvalidConfiguration
from app.services.settings_cache import SettingsCache


def test_defaults_when_nothing_stored(db_session):
    assert collections_config.get(db_session, "payment_due_days") == 7
    assert collections_config.get(db_session, "late_fee_daily_rate") == Decimal("0.05")
    assert supply_config.get(db_session, "default_commission_rate") == Decimal("0")
    assert numbering_config.get(db_session, "receipt_prefix") == "REC"
    assert numbering_config.get(db_session, "transaction_padding") == 8


def test_caller_default_wins_over_declared_default(db_session):
    assert collections_config.get(db_session, "payment_due_days", 14) == 14


def test_environment_fallback(db_session, monkeypatch):
    monkeypatch.setenv("PAYMENT_DUE_DAYS", "5")
    assert grace_period_days(db_session) == 5


def test_set_coerces_and_persists(db_session):
    assert collections_config.set(db_session, "payment_due_days", "3") == 3
    row = (
        db_session.query(DomainSetting)
        .filter(DomainSetting.domain == SettingDomain.collections)
        .filter(DomainSetting.key == "payment_due_days")
        .one()
    )
    assert row.value_text == "3"
    assert row.value_type == SettingValueType.integer
    assert collections_config.get(db_session, "payment_due_days") == 3


@pytest.mark.parametrize("value", [-1, "abc", "1.5", True])
def test_invalid_grace_period_is_rejected(db_session, value):
    with pytest.raises(InvalidConfiguration) as exc:
        collections_config.set(db_session, "payment_due_days", value)
    assert exc.value.code == "invalid_configuration"
    assert collections_config.get(db_session, "payment_due_days") == 7


@pytest.mark.parametrize("value", ["-0.5", "101", "ten"])
def test_invalid_commission_rate_is_rejected(db_session, value):
    with pytest.raises(InvalidConfiguration):
        supply_config.set(db_session, "default_commission_rate", value)


def test_unknown_key_is_rejected(db_session):
    with pytest.raises(InvalidConfiguration):
        collections_config.get(db_session, "grace")


def test_corrupt_stored_value_raises_on_read(db_session):
    db_session.add(
        DomainSetting(
            domain=SettingDomain.collections,
            key="payment_due_days",
            value_type=SettingValueType.integer,
            value_text="seven",
        )
    )
    db_session.commit()
    with pytest.raises(InvalidConfiguration) as exc:
        collections_config.get(db_session, "payment_due_days")
    assert exc.value.details["key"] == "collections.payment_due_days"


def test_write_replaces_a_value_cached_by_another_reader(db_session, fake_redis):
    collections_config.set(db_session, "payment_due_days", 7)
    assert collections_config.get(db_session, "payment_due_days") == 7
    # Another worker populated the cache from the old row.
    SettingsCache.set("collections", "payment_due_days", "7")

    collections_config.set(db_session, "payment_due_days", 3)

    assert fake_redis.store["settings:collections:payment_due_days"] == '"3"'
    assert collections_config.get(db_session, "payment_due_days") == 3


def test_reader_with_old_row_cannot_overwrite_a_write(db_session, fake_redis):
    collections_config.set(db_session, "payment_due_days", 7)
    collections_config.set(db_session, "payment_due_days", 3)

    # A reader that loaded the row before the second commit primes late.
    assert SettingsCache.prime("collections", "payment_due_days", "7") is False

    assert fake_redis.store["settings:collections:payment_due_days"] == '"3"'
    assert collections_config.get(db_session, "payment_due_days") == 3


def test_database_read_primes_an_empty_key(db_session, fake_redis):
    collections_config.set(db_session, "payment_due_days", 5)
    fake_redis.store.clear()
    fake_redis.ttls.clear()

    assert collections_config.get(db_session, "payment_due_days") == 5

    assert fake_redis.store["settings:collections:payment_due_days"] == '"5"'
    assert fake_redis.ttls["settings:collections:payment_due_days"] == (
        settings.settings_cache_ttl_seconds
    )


def test_failed_write_through_warns_about_stale_reads(db_session, fake_redis, caplog):
    fake_redis.fail = True
    with caplog.at_level("WARNING", logger="app.services.config_store"):
        collections_config.set(db_session, "payment_due_days", 4)
    assert "a cached value may be served" in caplog.text


def test_reads_fall_back_to_database_when_cache_is_down(db_session, fake_redis):
    collections_config.set(db_session, "payment_due_days", 4)
    fake_redis.fail = True
    assert collections_config.get(db_session, "payment_due_days") == 4
    collections_config.set(db_session, "payment_due_days", 2)
    assert collections_config.get(db_session, "payment_due_days") == 2


def test_forget_restores_default(db_session):
    collections_config.set(db_session, "payment_due_days", 2)
    assert collections_config.forget(db_session, "payment_due_days") is True
    assert collections_config.get(db_session, "payment_due_days") == 7
    assert collections_config.forget(db_session, "payment_due_days") is False


def test_get_many_mixes_cached_and_stored_values(db_session):
    numbering_config.set(db_session, "receipt_prefix", "RCP")
    values = numbering_config.get_many(db_session, ["receipt_prefix", "receipt_padding"])
    assert values == {"receipt_prefix": "RCP", "receipt_padding": 6}


def test_grace_change_reclassifies_on_next_read(db_session, collections, make_collection_payment, today):
    collections_config.set(db_session, "payment_due_days", 7)
    payment = make_collection_payment(start_offset=-5)
    assert collections.status_of(db_session, payment) == CollectionStatus.due

    collections_config.set(db_session, "payment_due_days", 3)

    assert collections.status_of(db_session, payment) == CollectionStatus.overdue
    overdue = collections.list(db_session, status="overdue")
    assert [p.id for p in overdue] == [payment.id]
    assert payment.due_date_start == today - timedelta(days=5)
