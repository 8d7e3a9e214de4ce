#!/usr/bin/env python3
"""
SQLAlchemy Database Configuration
==================================

This file builds the database engine and session factory used to store
telemetry records.

WHY NO MODULE-LEVEL ENGINE?
---------------------------
The API server and the CLI each build their own engine from the configured
database URL (see config.py). Tests build a throwaway in-memory database the
same way, so nothing here is shared between callers.

WHY check_same_thread=False?
-----------------------------
FastAPI runs sync endpoints in a thread pool. By default SQLite refuses to
use a connection from a thread other than the one that created it, so the
check is disabled for SQLite URLs. SQLAlchemy's pool hands each session its
own connection.

WHY StaticPool FOR ":memory:"?
------------------------------
Every new connection to an in-memory SQLite database gets a brand new,
empty database. StaticPool keeps exactly one connection alive so all
sessions see the same tables.
"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

# Base class that all our database models will inherit from
Base = declarative_base()


def build_engine(database_url: str) -> Engine:
    """Create an engine, applying the SQLite tweaks described above."""

    if not database_url.startswith("sqlite"):
        return create_engine(database_url)

    options = {"connect_args": {"check_same_thread": False}}
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        options["poolclass"] = StaticPool

    return create_engine(database_url, **options)


def build_session_factory(engine: Engine) -> sessionmaker:
    """Return a factory producing sessions bound to ``engine``."""

    return sessionmaker(
        autocommit=False,  # We'll manually commit when we want to save changes
        autoflush=False,   # We'll manually flush when needed
        bind=engine,
    )


def init_db(engine: Engine) -> None:
    """Create the telemetry table if it does not exist yet."""

    # Importing registers the model on Base.metadata
    import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
