import os
import uuid
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db import Base
from app.models import (  # noqa: F401
    CollectionPayment,
    DocumentSequence,
    DomainSetting,
    LedgerTransaction,
    SupplyPayment,
)
from app.schemas.payments import CollectionPaymentCreate, SupplyPaymentCreate
from app.services import settings_cache
from app.services.clock import FixedClock
from app.services.ledger import TransactionRecorder
from app.services.payments import CollectionPayments, SupplyPayments

from tests.mocks import FakeRedis


@pytest.fixture(scope="session")
def engine():
    database_url = os.getenv("TEST_DATABASE_URL")
    if database_url:
        engine = create_engine(database_url)
    else:
        engine = create_engine(
            "sqlite+pysqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

        # pysqlite opens transactions lazily and breaks SAVEPOINT; emit BEGIN ourselves.
        @event.listens_for(engine, "connect")
        def _disable_pysqlite_transactions(dbapi_connection, _connection_record):
            dbapi_connection.isolation_level = None

        @event.listens_for(engine, "begin")
        def _emit_begin(conn):
            conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(engine)
    return engine


@pytest.fixture()
def db_session(engine):
    connection = engine.connect()
    transaction = connection.begin()
    # Service commits and rollbacks stay inside savepoints of the outer transaction.
    SessionLocal = sessionmaker(
        bind=connection,
        autoflush=False,
        autocommit=False,
        join_transaction_mode="create_savepoint",
    )
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        transaction.rollback()
        connection.close()


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch):
    client = FakeRedis()
    monkeypatch.setattr(settings_cache, "_redis_client", client)
    return client


@pytest.fixture()
def clock():
    return FixedClock(datetime(2026, 3, 15, 9, 30, tzinfo=UTC))


@pytest.fixture()
def today(clock) -> date:
    return clock.today()


@pytest.fixture()
def recorder(clock):
    return MagicMock(wraps=TransactionRecorder(clock=clock))


@pytest.fixture()
def collections(clock, recorder):
    return CollectionPayments(clock=clock, recorder=recorder)


@pytest.fixture()
def supplies(clock, recorder):
    return SupplyPayments(clock=clock, recorder=recorder)


@pytest.fixture()
def make_collection_payment(db_session, collections, today):
    """Create an installment through the service; dates are offsets from today."""

    def _make(start_offset: int = 0, window_days: int = 5, **overrides):
        data = {
            "unit_contract_id": uuid.uuid4(),
            "property_id": uuid.uuid4(),
            "tenant_id": uuid.uuid4(),
            "amount": Decimal("1500.00"),
            "due_date_start": today + timedelta(days=start_offset),
            "due_date_end": today + timedelta(days=start_offset + window_days),
        }
        data.update(overrides)
        return collections.create(db_session, CollectionPaymentCreate(**data))

    return _make


@pytest.fixture()
def make_supply_payment(db_session, supplies, today):
    def _make(due_offset: int = 0, **overrides):
        data = {
            "property_contract_id": uuid.uuid4(),
            "owner_id": uuid.uuid4(),
            "gross_amount": Decimal("1000.00"),
            "due_date": today + timedelta(days=due_offset),
        }
        data.update(overrides)
        return supplies.create(db_session, SupplyPaymentCreate(**data))

    return _make
