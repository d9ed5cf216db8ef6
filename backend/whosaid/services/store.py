"""Session persistence: one JSON-serialized session per code, with expiry.

Writes are guarded twice: callers hold the per-code lock for the whole
read-modify-write, and ``save`` only lands if the row version is still the
one that was read.
"""

import json
import logging
import threading
import time
from contextlib import contextmanager
from typing import Dict, Optional

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from whosaid import db
from whosaid.models import GameSessionRecord
from whosaid.services.games.errors import ConcurrentUpdate, SessionNotFound, StorageError
from whosaid.services.games.state import Session

logger = logging.getLogger(__name__)

DEFAULT_TTL_SEC = 24 * 60 * 60


class _LockEntry:
    __slots__ = ('lock', 'users')

    def __init__(self):
        self.lock = threading.Lock()
        self.users = 0


class SessionLocks:
    """Per-code mutual exclusion for read-modify-write cycles.

    An entry only lives while some caller holds or waits on it, so codes
    that were never created or have since gone away leave nothing behind.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, _LockEntry] = {}

    @contextmanager
    def hold(self, code: str):
        with self._guard:
            entry = self._locks.get(code)
            if entry is None:
                entry = self._locks[code] = _LockEntry()
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._guard:
                entry.users -= 1
                if entry.users == 0 and self._locks.get(code) is entry:
                    del self._locks[code]

    def discard(self, code: str) -> None:
        # Entries in use are released by their last holder instead
        with self._guard:
            entry = self._locks.get(code)
            if entry is not None and entry.users == 0:
                del self._locks[code]

    def __contains__(self, code: str) -> bool:
        return code in self._locks

    def __len__(self):
        return len(self._locks)


class SessionStore:
    def __init__(self, ttl_sec: int = DEFAULT_TTL_SEC, locks: Optional[SessionLocks] = None, clock=time.time):
        self.ttl_sec = ttl_sec
        self.locks = locks or SessionLocks()
        self._clock = clock

    def locked(self, code: str):
        return self.locks.hold(code)

    def _live_row(self, code: str) -> Optional[GameSessionRecord]:
        stmt = (
            select(GameSessionRecord)
            .where(GameSessionRecord.code == code)
            .execution_options(populate_existing=True)
        )
        row = db.session.execute(stmt).scalar_one_or_none()
        if row is None or row.expires_at <= self._clock():
            return None
        return row

    def exists(self, code: str) -> bool:
        try:
            return self._live_row(code) is not None
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StorageError() from exc

    def create(self, session: Session) -> None:
        stmt = insert(GameSessionRecord).values(
            code=session.code,
            payload=json.dumps(session.to_dict()),
            version=1,
            created_at=session.created_at.timestamp(),
            expires_at=session.expires_at.timestamp(),
        )
        try:
            # An expired row under the same code is dead weight; replace it
            db.session.execute(
                delete(GameSessionRecord).where(
                    GameSessionRecord.code == session.code,
                    GameSessionRecord.expires_at <= self._clock(),
                )
            )
            db.session.execute(stmt)
            db.session.commit()
        except IntegrityError as exc:
            db.session.rollback()
            raise StorageError(f'Game code {session.code} already in use') from exc
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.warning('[store] create failed code=%s: %s', session.code, exc)
            raise StorageError() from exc
        session.version = 1

    def get(self, code: str) -> Optional[Session]:
        """Return the stored session, or None when missing or expired."""
        try:
            row = self._live_row(code)
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.warning('[store] get failed code=%s: %s', code, exc)
            raise StorageError() from exc
        if row is None:
            return None
        session = Session.from_dict(json.loads(row.payload))
        session.version = row.version
        return session

    def save(self, session: Session) -> None:
        """Overwrite an existing session, keeping its remaining expiry."""
        stmt = (
            update(GameSessionRecord)
            .where(
                GameSessionRecord.code == session.code,
                GameSessionRecord.version == session.version,
                GameSessionRecord.expires_at > self._clock(),
            )
            .values(payload=json.dumps(session.to_dict()), version=session.version + 1)
            .execution_options(synchronize_session=False)
        )
        try:
            result = db.session.execute(stmt)
            if result.rowcount == 0:
                db.session.rollback()
                if self._live_row(session.code) is None:
                    raise SessionNotFound()
                raise ConcurrentUpdate()
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.warning('[store] save failed code=%s: %s', session.code, exc)
            raise StorageError() from exc
        session.version += 1

    def delete(self, code: str) -> None:
        try:
            db.session.execute(delete(GameSessionRecord).where(GameSessionRecord.code == code))
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StorageError() from exc
        self.locks.discard(code)

    def purge_expired(self) -> int:
        """Remove every expired row. Never called by the game flow itself."""
        cutoff = self._clock()
        try:
            codes = db.session.execute(
                select(GameSessionRecord.code).where(GameSessionRecord.expires_at <= cutoff)
            ).scalars().all()
            if codes:
                db.session.execute(
                    delete(GameSessionRecord).where(
                        GameSessionRecord.code.in_(codes),
                        GameSessionRecord.expires_at <= cutoff,
                    )
                )
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StorageError() from exc
        for code in codes:
            self.locks.discard(code)
        return len(codes)
