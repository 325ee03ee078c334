"""
Score store: persistence contract for EpochScore rows keyed by (alias, epoch).

Writes are upserts with update-on-conflict: re-running the pipeline makes the
stored row match the latest computed value, and writing the same score twice
leaves the table unchanged. Each upsert is its own transaction; the store never
retries. Any driver failure surfaces as StoreError.

Uses DATABASE_URL for PostgreSQL when set; otherwise falls back to SQLite
(DB_PATH or timely_credits.db). Same public API for both dialects.
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Iterator

from sqlalchemy import create_engine, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import ArgumentError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from timely_credits.core.exceptions import StoreError
from timely_credits.database.models import Base, TimelyVoteCredit
from timely_credits.logging import get_logger
from timely_credits.scoring.models import EpochScore

logger = get_logger(__name__)

DEFAULT_SQLITE_PATH = "timely_credits.db"

_UPDATE_COLUMNS = ("earned_credits", "max_possible_credits", "score")

# Signed 64-bit column range; decoded u64 credits can exceed it.
BIGINT_MIN = -(2**63)
BIGINT_MAX = 2**63 - 1


def _get_database_url() -> str:
    """Return DATABASE_URL if set; else SQLite from DB_PATH or the default file."""
    url = (os.getenv("DATABASE_URL") or "").strip()
    if url:
        return url
    path = (os.getenv("DB_PATH") or "").strip() or DEFAULT_SQLITE_PATH
    return f"sqlite:///{path}"


def normalize_database_url(url: str) -> str:
    """Route bare postgres:// and postgresql:// URLs to the psycopg (v3) driver."""
    url = url.strip()
    for prefix in ("postgres://", "postgresql://"):
        if url.startswith(prefix):
            return "postgresql+psycopg://" + url[len(prefix):]
    return url


# -----------------------------------------------------------------------------
# Abstract store
# -----------------------------------------------------------------------------


class ScoreStore(ABC):
    """Abstract interface for epoch score persistence."""

    @abstractmethod
    def ensure_schema(self) -> None:
        """Create the timely_vote_credits table if it does not exist."""
        ...

    @abstractmethod
    def upsert(self, score: EpochScore) -> None:
        """Insert the row, or overwrite earned/max/score for an existing (alias, epoch)."""
        ...

    @abstractmethod
    def get_score(self, alias: str, epoch: int) -> EpochScore | None:
        """Return the stored score for (alias, epoch), or None."""
        ...

    @abstractmethod
    def list_scores(
        self,
        alias: str,
        *,
        limit: int = 100,
        since_epoch: int | None = None,
    ) -> list[EpochScore]:
        """Return stored scores for alias, newest epoch first."""
        ...

    def close(self) -> None:
        """Release connections. Default: nothing to release."""


# -----------------------------------------------------------------------------
# SQLAlchemy store (PostgreSQL / SQLite)
# -----------------------------------------------------------------------------


class SQLAlchemyScoreStore(ScoreStore):
    """SQLAlchemy implementation using the dialect's INSERT ... ON CONFLICT DO UPDATE."""

    _INSERTS = {
        "postgresql": postgresql.insert,
        "sqlite": sqlite.insert,
    }

    def __init__(self, engine: Engine) -> None:
        dialect = engine.dialect.name
        if dialect not in self._INSERTS:
            raise StoreError(f"unsupported database dialect: {dialect}")
        self._engine = engine
        self._insert = self._INSERTS[dialect]
        self._sessions = sessionmaker(bind=engine, autoflush=False)

    @classmethod
    def from_url(cls, url: str) -> "SQLAlchemyScoreStore":
        url = normalize_database_url(url)
        connect_args: dict[str, Any] = {}
        if url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        try:
            engine = create_engine(url, connect_args=connect_args, pool_pre_ping=True)
        except (ArgumentError, SQLAlchemyError, ImportError) as e:
            raise StoreError(f"cannot create database engine: {e}") from e
        logger.info(
            "score_store_engine",
            url=make_url(url).render_as_string(hide_password=True),
        )
        return cls(engine)

    @property
    def engine(self) -> Engine:
        return self._engine

    @contextmanager
    def _session_scope(self) -> Iterator[Session]:
        """Single session. Commits on success, rolls back on error."""
        session = self._sessions()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def ensure_schema(self) -> None:
        try:
            Base.metadata.create_all(bind=self._engine)
        except SQLAlchemyError as e:
            raise StoreError(f"cannot create timely_vote_credits table: {e}") from e
        logger.info("score_store_schema_ready", table=TimelyVoteCredit.__tablename__)

    def upsert(self, score: EpochScore) -> None:
        for column in ("epoch", "earned_credits", "max_possible_credits"):
            value = getattr(score, column)
            if not BIGINT_MIN <= value <= BIGINT_MAX:
                raise StoreError(
                    f"upsert failed for {score.alias} epoch {score.epoch}: "
                    f"{column}={value} out of BIGINT range",
                    alias=score.alias,
                    epoch=score.epoch,
                )
        table = TimelyVoteCredit.__table__
        stmt = self._insert(table).values(
            alias=score.alias,
            epoch=score.epoch,
            earned_credits=score.earned_credits,
            max_possible_credits=score.max_possible_credits,
            score=score.score,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.alias, table.c.epoch],
            set_={col: stmt.excluded[col] for col in _UPDATE_COLUMNS},
        )
        try:
            with self._session_scope() as session:
                session.execute(stmt)
        except (SQLAlchemyError, OverflowError, TypeError) as e:
            raise StoreError(
                f"upsert failed for {score.alias} epoch {score.epoch}: {e}",
                alias=score.alias,
                epoch=score.epoch,
            ) from e

    def get_score(self, alias: str, epoch: int) -> EpochScore | None:
        try:
            with self._session_scope() as session:
                row = session.get(TimelyVoteCredit, (alias, epoch))
                return row.to_epoch_score() if row else None
        except SQLAlchemyError as e:
            raise StoreError(f"read failed for {alias} epoch {epoch}: {e}", alias=alias, epoch=epoch) from e

    def list_scores(
        self,
        alias: str,
        *,
        limit: int = 100,
        since_epoch: int | None = None,
    ) -> list[EpochScore]:
        query = select(TimelyVoteCredit).where(TimelyVoteCredit.alias == alias)
        if since_epoch is not None:
            query = query.where(TimelyVoteCredit.epoch >= since_epoch)
        query = query.order_by(TimelyVoteCredit.epoch.desc()).limit(limit)
        try:
            with self._session_scope() as session:
                return [row.to_epoch_score() for row in session.scalars(query)]
        except SQLAlchemyError as e:
            raise StoreError(f"list failed for {alias}: {e}", alias=alias) from e

    def close(self) -> None:
        self._engine.dispose()


def get_store(database_url: str | None = None) -> SQLAlchemyScoreStore:
    """Return a store for database_url, or for DATABASE_URL / DB_PATH from the environment."""
    return SQLAlchemyScoreStore.from_url(database_url or _get_database_url())
