"""Data access layer for session storage"""

from typing import Optional
from sqlalchemy.orm import Session, sessionmaker
from paywall_checkout.infrastructure.database.models import SessionEntry


class SessionEntryRepository:
    """Repository for the entries of all browser sessions"""

    def __init__(self, db: Session):
        self.db = db

    def get_entry(self, session_id: str, key: str) -> Optional[SessionEntry]:
        return (
            self.db.query(SessionEntry)
            .filter(SessionEntry.session_id == session_id, SessionEntry.key == key)
            .first()
        )

    def upsert_entry(self, session_id: str, key: str, value: str) -> SessionEntry:
        """Insert or overwrite one key; last write wins"""
        entry = self.get_entry(session_id, key)
        if entry is None:
            entry = SessionEntry(session_id=session_id, key=key, value=value)
            self.db.add(entry)
        else:
            entry.value = value
        self.db.flush()
        return entry

    def delete_entry(self, session_id: str, key: str) -> None:
        (
            self.db.query(SessionEntry)
            .filter(SessionEntry.session_id == session_id, SessionEntry.key == key)
            .delete()
        )


class SqlKeyValueStore:
    """
    Key-value store for one browser session backed by the session_entry table.

    Each operation runs in its own short transaction so timer callbacks can
    write outside of any request.
    """

    def __init__(self, session_factory: sessionmaker, session_id: str):
        self._session_factory = session_factory
        self.session_id = session_id

    def get(self, key: str) -> Optional[str]:
        with self._session_factory() as db:
            entry = SessionEntryRepository(db).get_entry(self.session_id, key)
            return entry.value if entry is not None else None

    def set(self, key: str, value: str) -> None:
        with self._session_factory() as db:
            SessionEntryRepository(db).upsert_entry(self.session_id, key, value)
            db.commit()

    def remove(self, key: str) -> None:
        with self._session_factory() as db:
            SessionEntryRepository(db).delete_entry(self.session_id, key)
            db.commit()
