"""
Database Configuration Module

The rate engine only reads from the database (pincode master, rate cards,
seller overrides, pincode serviceability), so the pool is sized for
short read transactions.

Connection string resolution:
- DATABASE_URL when set (any SQLAlchemy URL, sqlite is used by the tests)
- otherwise a postgres URI built from db_user / db_password / db_host /
  db_port / db_name
"""

import os
from datetime import datetime
from urllib.parse import quote_plus
import uuid as uuid
from pytz import timezone
from dotenv import load_dotenv

load_dotenv()

from sqlalchemy import Column, TIMESTAMP, Boolean, Integer, Uuid, create_engine, event
from sqlalchemy.orm import declarative_base
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from logger import logging


# ============================================
# DATABASE CONNECTION CONFIGURATION
# ============================================

DBTYPE_POSTGRES = "postgresql"


def build_database_uri() -> str:
    database_url = os.environ.get("DATABASE_URL")
    if database_url:
        return database_url

    return "%s://%s:%s@%s:%s/%s" % (
        DBTYPE_POSTGRES,
        os.environ.get("db_user", "postgres"),
        quote_plus(os.environ.get("db_password", "")),
        os.environ.get("db_host", "localhost"),
        os.environ.get("db_port", "5432"),
        os.environ.get("db_name", "rate_engine"),
    )


CORE_SQLALCHEMY_DATABASE_URI = build_database_uri()

# ============================================
# CONNECTION POOL SETTINGS
# ============================================

POOL_CONFIG = {
    "pool_size": int(os.environ.get("DB_POOL_SIZE", 10)),
    "max_overflow": int(os.environ.get("DB_MAX_OVERFLOW", 10)),
    "pool_timeout": 30,
    # handles stale connections
    "pool_pre_ping": True,
    "pool_recycle": 1800,
    "echo": False,
    "poolclass": QueuePool,
}

# a single shared in-memory connection, every session sees the same tables
SQLITE_CONFIG = {
    "connect_args": {"check_same_thread": False},
    "poolclass": StaticPool,
    "echo": False,
}

db_engine = create_engine(
    CORE_SQLALCHEMY_DATABASE_URI,
    **(
        SQLITE_CONFIG
        if CORE_SQLALCHEMY_DATABASE_URI.startswith("sqlite")
        else POOL_CONFIG
    ),
)

# ============================================
# SESSION CONFIGURATION
# ============================================

SessionLocal = sessionmaker(
    autoflush=False,
    bind=db_engine,
    expire_on_commit=False,
)

# Timezone configuration
UTC = timezone("UTC")
IST = timezone("Asia/Kolkata")


def time_now():
    """Get current UTC time"""
    return datetime.now(UTC)


def time_now_ist():
    """Get current IST time"""
    return datetime.now(IST)


# ============================================
# CONNECTION POOL MONITORING
# ============================================


@event.listens_for(db_engine, "checkout")
def receive_checkout(dbapi_connection, connection_record, connection_proxy):
    logging.debug("Connection checked out from pool")


@event.listens_for(db_engine, "checkin")
def receive_checkin(dbapi_connection, connection_record):
    logging.debug("Connection returned to pool")


# ============================================
# DECLARATIVE BASE
# ============================================

DBBase = declarative_base()


def init_models():
    """Create any missing tables. Called once at application startup."""

    # registers every model on DBBase.metadata
    import models  # noqa: F401

    DBBase.metadata.create_all(bind=db_engine)


# ============================================
# BASE MODEL CLASS
# ============================================


class DBBaseClass:
    """
    Base class for all database models.

    Provides:
    - Auto-incrementing primary key (id)
    - UUID for external references
    - Created/updated timestamps
    - Soft delete flag
    """

    id = Column(Integer, primary_key=True, unique=True, autoincrement=True)

    # UUID for external API references (don't expose internal IDs)
    uuid = Column(Uuid(as_uuid=True), default=uuid.uuid4, unique=True, nullable=False)

    created_at = Column(TIMESTAMP(timezone=True), default=time_now, nullable=False)
    updated_at = Column(
        TIMESTAMP(timezone=True),
        default=time_now,
        onupdate=time_now,
        nullable=False,
    )

    # Soft delete
    is_deleted = Column(Boolean, default=False, index=True)
