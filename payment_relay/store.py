"""
Payment record persistence.

Supabase is the primary store. A plain SQL database (``DATABASE_URL``) can be used
instead when Supabase is not configured.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from supabase import Client, create_client

from payment_relay.config import Settings
from payment_relay.database import Base, make_engine, make_session_factory
from payment_relay.models import Payment, PaymentRecord
from payment_relay.results import Failure, FailureKind, Result, Success

logger = logging.getLogger(__name__)


class PaymentStore(ABC):

    @abstractmethod
    def insert_payment_record(self, record: PaymentRecord) -> Result[PaymentRecord]:
        """Insert exactly one payment row. No upsert, no retry."""


class SupabasePaymentStore(PaymentStore):

    def __init__(self, client: Client, table: str = "payments"):
        self.client = client
        self.table = table

    @classmethod
    def from_credentials(cls, url: str, key: str, table: str = "payments"):
        return cls(create_client(url, key), table)

    def insert_payment_record(self, record):
        row = record.to_row()
        # Decimal is not JSON serializable
        if row["amount"] is not None:
            row["amount"] = float(row["amount"])
        try:
            self.client.table(self.table).insert([row]).execute()
        except Exception as e:
            return Failure(FailureKind.UPSTREAM_FAILURE, f"Supabase insert into {self.table} failed", e)
        return Success(record)


class SqlAlchemyPaymentStore(PaymentStore):

    def __init__(self, session_factory):
        self.session_factory = session_factory

    @classmethod
    def from_url(cls, database_url: str):
        engine = make_engine(database_url)
        Base.metadata.create_all(bind=engine)
        return cls(make_session_factory(engine))

    def insert_payment_record(self, record):
        db = self.session_factory()
        try:
            db.add(Payment(**record.to_row()))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            return Failure(FailureKind.UPSTREAM_FAILURE, "Database insert failed", e)
        finally:
            db.close()
        return Success(record)


def build_payment_store(settings: Settings) -> Optional[PaymentStore]:
    if settings.supabase_enabled:
        return SupabasePaymentStore.from_credentials(
            settings.supabase_url,
            settings.supabase_service_role_key,
            settings.supabase_table,
        )
    if settings.database_url:
        return SqlAlchemyPaymentStore.from_url(settings.database_url)
    logger.warning("No payment store configured, completed checkouts will not be recorded")
    return None
