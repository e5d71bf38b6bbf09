"""SQLAlchemy-backed account store.

Seed completions rely on a unique constraint so that the first insert for an
(account, seed, mode) triple wins even under concurrent requests.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterator, Mapping, Optional

from sqlalchemy import (
    JSON,
    Date,
    DateTime,
    Engine,
    Integer,
    LargeBinary,
    String,
    UniqueConstraint,
    case,
    create_engine,
    or_,
    select,
    update,
)
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

from .account_store import AccountStore, DailyRunRecord
from .auth import Authenticator
from .daily import Clock, utc_now
from .errors import AuthenticationError, LedgerFault

logger = logging.getLogger(__name__)

# the sqlite3 driver raises these unwrapped for values it cannot bind
STORE_ERRORS = (SQLAlchemyError, OverflowError, ValueError)


class Base(DeclarativeBase):
    pass


class Account(Base):
    __tablename__ = "accounts"

    uuid: Mapped[bytes] = mapped_column(LargeBinary(16), primary_key=True)
    last_activity: Mapped[Optional[datetime]] = mapped_column(DateTime)


class AccountStats(Base):
    __tablename__ = "account_stats"

    uuid: Mapped[bytes] = mapped_column(LargeBinary(16), primary_key=True)
    stats: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)


class DailyRun(Base):
    __tablename__ = "daily_runs"
    __table_args__ = (UniqueConstraint("uuid", "date", name="uq_daily_run_account_date"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    uuid: Mapped[bytes] = mapped_column(LargeBinary(16), nullable=False, index=True)
    run_date: Mapped[date] = mapped_column("date", Date, nullable=False)
    score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    wave: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    timestamp: Mapped[datetime] = mapped_column(DateTime, nullable=False)


class SeedCompletion(Base):
    __tablename__ = "seed_completions"
    __table_args__ = (UniqueConstraint("uuid", "seed", "mode", name="uq_seed_completion"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    uuid: Mapped[bytes] = mapped_column(LargeBinary(16), nullable=False, index=True)
    seed: Mapped[str] = mapped_column(String(64), nullable=False)
    mode: Mapped[int] = mapped_column(Integer, nullable=False)
    completed_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)


class SessionToken(Base):
    __tablename__ = "sessions"

    token: Mapped[str] = mapped_column(String(128), primary_key=True)
    uuid: Mapped[bytes] = mapped_column(LargeBinary(16), nullable=False, index=True)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime)


def _naive_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc).replace(tzinfo=None)


class SqlAccountStore(AccountStore):
    def __init__(self, engine: Engine, clock: Clock = utc_now) -> None:
        self.engine = engine
        self._clock = clock
        self._sessions = sessionmaker(engine, expire_on_commit=False)

    @classmethod
    def from_url(cls, url: str, clock: Clock = utc_now) -> "SqlAccountStore":
        return cls(create_engine(url), clock=clock)

    def create_schema(self) -> None:
        Base.metadata.create_all(self.engine)

    def _now(self) -> datetime:
        return _naive_utc(self._clock())

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[Session]:
        try:
            with self._sessions.begin() as session:
                yield session
        except STORE_ERRORS as exc:
            raise LedgerFault(f"failed to {operation}: {exc}") from exc

    def update_stats(self, account: bytes, stats: Mapping[str, Any]) -> None:
        with self._transaction("update account stats") as session:
            session.merge(AccountStats(uuid=bytes(account), stats=dict(stats), updated_at=self._now()))

    def _daily_run_update(self, account: bytes, day: date, score: int, wave: int, now: datetime):
        # timestamp goes first so it compares against the previous score
        return (
            update(DailyRun)
            .where(DailyRun.uuid == bytes(account), DailyRun.run_date == day)
            .ordered_values(
                (DailyRun.timestamp, case((DailyRun.score < score, now), else_=DailyRun.timestamp)),
                (DailyRun.score, case((DailyRun.score < score, score), else_=DailyRun.score)),
                (DailyRun.wave, case((DailyRun.wave < wave, wave), else_=DailyRun.wave)),
            )
            .execution_options(synchronize_session=False)
        )

    def upsert_daily_run(self, account: bytes, score: int, wave_reached: int) -> None:
        now = self._now()
        stmt = self._daily_run_update(account, now.date(), score, wave_reached, now)
        try:
            with self._sessions.begin() as session:
                if session.execute(stmt).rowcount == 0:
                    session.add(
                        DailyRun(uuid=bytes(account), run_date=now.date(), score=score, wave=wave_reached, timestamp=now)
                    )
        except IntegrityError:
            # another request inserted today's row first
            logger.debug("Daily run row appeared concurrently; retrying as update")
            with self._transaction("update daily run") as session:
                session.execute(stmt)
        except STORE_ERRORS as exc:
            raise LedgerFault(f"failed to add or update daily run record: {exc}") from exc

    def try_record_seed_completion(self, account: bytes, seed: str, mode: int) -> bool:
        row = SeedCompletion(uuid=bytes(account), seed=seed, mode=int(mode), completed_at=self._now())
        try:
            with self._sessions.begin() as session:
                session.add(row)
        except IntegrityError:
            return False
        except STORE_ERRORS as exc:
            raise LedgerFault(f"failed to mark seed as completed: {exc}") from exc
        return True

    def touch_last_activity(self, account: bytes) -> None:
        with self._transaction("update account last activity") as session:
            session.merge(Account(uuid=bytes(account), last_activity=self._now()))

    # Read helpers

    def daily_run_for(self, account: bytes, day: Optional[date] = None) -> Optional[DailyRunRecord]:
        day = day or self._now().date()
        with self._transaction("read daily run") as session:
            row = session.scalars(
                select(DailyRun).where(DailyRun.uuid == bytes(account), DailyRun.run_date == day)
            ).first()
            if row is None:
                return None
            return DailyRunRecord(score=row.score, wave=row.wave, updated_at=row.timestamp)

    def stats_for(self, account: bytes) -> Optional[Dict[str, Any]]:
        with self._transaction("read account stats") as session:
            row = session.get(AccountStats, bytes(account))
            return dict(row.stats) if row is not None else None

    def has_completed(self, account: bytes, seed: str, mode: int) -> bool:
        with self._transaction("read seed completion") as session:
            found = session.scalars(
                select(SeedCompletion.id).where(
                    SeedCompletion.uuid == bytes(account),
                    SeedCompletion.seed == seed,
                    SeedCompletion.mode == int(mode),
                )
            ).first()
            return found is not None

    def last_activity_for(self, account: bytes) -> Optional[datetime]:
        with self._transaction("read account last activity") as session:
            row = session.get(Account, bytes(account))
            return row.last_activity if row is not None else None

    def add_session(self, token: str, account: bytes, expires_at: Optional[datetime] = None) -> None:
        expiry = _naive_utc(expires_at) if expires_at is not None else None
        with self._transaction("add session") as session:
            session.merge(SessionToken(token=token, uuid=bytes(account), expires_at=expiry))


class SqlAuthenticator(Authenticator):
    """Resolves tokens against the ``sessions`` table written by the login service."""

    def __init__(self, engine: Engine, clock: Clock = utc_now) -> None:
        self._sessions = sessionmaker(engine)
        self._clock = clock

    def resolve(self, token: str) -> bytes:
        if not token:
            raise AuthenticationError("missing session token")
        now = _naive_utc(self._clock())
        try:
            with self._sessions() as session:
                account = session.scalars(
                    select(SessionToken.uuid).where(
                        SessionToken.token == token,
                        or_(SessionToken.expires_at.is_(None), SessionToken.expires_at > now),
                    )
                ).first()
        except SQLAlchemyError as exc:
            logger.exception("Failed to look up session token")
            raise AuthenticationError(f"failed to validate session token: {exc}") from exc
        if account is None:
            raise AuthenticationError("invalid or expired session token")
        return bytes(account)
