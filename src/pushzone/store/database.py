"""Key-value stores for settings, progress, and leases.

This module provides:
- OptionStore / TransientStore: abstract store interfaces
- Database: SQLAlchemy/SQLite backing shared by both SQL stores
- SQLOptionStore / SQLTransientStore: durable implementations
- MemoryOptionStore / MemoryTransientStore: in-process implementations

Values are JSON-serialized. Transient records carry an optional expiry and
are invisible once it has passed.
"""

from __future__ import annotations

import json
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any

from sqlalchemy import create_engine, delete, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from pushzone.store.models import Base, Option, Transient

if TYPE_CHECKING:
    from sqlalchemy import Engine

Clock = Callable[[], float]


class OptionStore(ABC):
    """Durable, process-wide, string-keyed store."""

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """Return the stored value or default if missing."""

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store a JSON-serializable value."""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete a key.

        Returns:
            True if the key existed.
        """


class TransientStore(ABC):
    """Short-lived store supporting set-with-expiry, get, and delete."""

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """Return the live value or default if missing or expired."""

    @abstractmethod
    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Store a value, expiring after ttl seconds (None = no expiry)."""

    @abstractmethod
    def add(self, key: str, value: Any, ttl: float | None = None) -> bool:
        """Store a value only if no live value exists.

        Returns:
            True if the value was stored.
        """

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete a key.

        Returns:
            True if a live value existed.
        """

    def exists(self, key: str) -> bool:
        """Check whether a live value exists."""
        return self.get(key) is not None


def _expiry(clock: Clock, ttl: float | None) -> float | None:
    return None if ttl is None else clock() + ttl


class Database:
    """SQLAlchemy database holding the options and transients tables.

    Uses SQLite with WAL mode so short-lived task activations in separate
    processes can share state.
    """

    def __init__(self, db_path: Path | str, clock: Clock = time.time) -> None:
        """Initialize the database.

        Args:
            db_path: Path to the SQLite database file.
            clock: Time source used for transient expiry.
        """
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._clock = clock

        self._engine: Engine = create_engine(
            f"sqlite:///{self._db_path}",
            connect_args={"check_same_thread": False},
            echo=False,
        )

        with self._engine.connect() as conn:
            conn.exec_driver_sql("PRAGMA journal_mode=WAL")

        Base.metadata.create_all(self._engine)

        self.options = SQLOptionStore(self._engine)
        self.transients = SQLTransientStore(self._engine, clock)

    @property
    def path(self) -> Path:
        return self._db_path

    @property
    def engine(self) -> Engine:
        """Engine shared with the persistent job store."""
        return self._engine

    def close(self) -> None:
        """Close the database connection."""
        self._engine.dispose()


class SQLOptionStore(OptionStore):
    """Options table implementation."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def get(self, key: str, default: Any = None) -> Any:
        with Session(self._engine) as session:
            row = session.get(Option, key)
            if row is None:
                return default
            return json.loads(row.value)

    def set(self, key: str, value: Any) -> None:
        payload = json.dumps(value)
        with Session(self._engine) as session:
            stmt = sqlite_insert(Option).values(key=key, value=payload)
            stmt = stmt.on_conflict_do_update(
                index_elements=[Option.key], set_={"value": payload}
            )
            session.execute(stmt)
            session.commit()

    def delete(self, key: str) -> bool:
        with Session(self._engine) as session:
            result = session.execute(delete(Option).where(Option.key == key))
            session.commit()
            return bool(result.rowcount)


class SQLTransientStore(TransientStore):
    """Transients table implementation.

    add() runs the expired-row cleanup and the insert-if-absent in one
    transaction, so two activations racing for the same key cannot both
    win.
    """

    def __init__(self, engine: Engine, clock: Clock = time.time) -> None:
        self._engine = engine
        self._clock = clock

    def _purge_expired(self, session: Session, key: str) -> None:
        session.execute(
            delete(Transient).where(
                Transient.key == key,
                Transient.expires_at.is_not(None),
                Transient.expires_at <= self._clock(),
            )
        )

    def get(self, key: str, default: Any = None) -> Any:
        with Session(self._engine) as session:
            row = session.execute(
                select(Transient).where(Transient.key == key)
            ).scalar_one_or_none()
            if row is None:
                return default
            if row.expires_at is not None and row.expires_at <= self._clock():
                return default
            return json.loads(row.value)

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        payload = json.dumps(value)
        expires_at = _expiry(self._clock, ttl)
        with Session(self._engine) as session:
            stmt = sqlite_insert(Transient).values(
                key=key, value=payload, expires_at=expires_at
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[Transient.key],
                set_={"value": payload, "expires_at": expires_at},
            )
            session.execute(stmt)
            session.commit()

    def add(self, key: str, value: Any, ttl: float | None = None) -> bool:
        payload = json.dumps(value)
        with Session(self._engine) as session:
            self._purge_expired(session, key)
            stmt = (
                sqlite_insert(Transient)
                .values(key=key, value=payload, expires_at=_expiry(self._clock, ttl))
                .on_conflict_do_nothing(index_elements=[Transient.key])
            )
            result = session.execute(stmt)
            session.commit()
            return bool(result.rowcount)

    def delete(self, key: str) -> bool:
        existed = self.exists(key)
        with Session(self._engine) as session:
            session.execute(delete(Transient).where(Transient.key == key))
            session.commit()
        return existed


class MemoryOptionStore(OptionStore):
    """In-process option store for tests and one-shot runs."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}
        self._lock = threading.RLock()

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            if key not in self._data:
                return default
            return json.loads(self._data[key])

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = json.dumps(value)

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None


class MemoryTransientStore(TransientStore):
    """In-process transient store with clock-driven expiry."""

    def __init__(self, clock: Clock = time.time) -> None:
        self._data: dict[str, tuple[str, float | None]] = {}
        self._clock = clock
        self._lock = threading.RLock()

    def _live(self, key: str) -> tuple[str, float | None] | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        _, expires_at = entry
        if expires_at is not None and expires_at <= self._clock():
            del self._data[key]
            return None
        return entry

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            entry = self._live(key)
            if entry is None:
                return default
            return json.loads(entry[0])

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        with self._lock:
            self._data[key] = (json.dumps(value), _expiry(self._clock, ttl))

    def add(self, key: str, value: Any, ttl: float | None = None) -> bool:
        with self._lock:
            if self._live(key) is not None:
                return False
            self._data[key] = (json.dumps(value), _expiry(self._clock, ttl))
            return True

    def delete(self, key: str) -> bool:
        with self._lock:
            existed = self._live(key) is not None
            self._data.pop(key, None)
            return existed
