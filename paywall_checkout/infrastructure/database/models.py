"""SQLAlchemy ORM models for session-scoped key-value storage"""

import uuid
from sqlalchemy import Column, String, DateTime, Text, UniqueConstraint
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class SessionEntry(Base):
    """One key of one browser session's storage"""

    __tablename__ = "session_entry"
    __table_args__ = (UniqueConstraint("session_id", "key", name="uq_session_entry_key"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    session_id = Column(String(64), nullable=False, index=True)
    key = Column(String(64), nullable=False)
    value = Column(Text, nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
