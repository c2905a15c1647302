"""Key-value entry ORM model."""
from __future__ import annotations

from sqlalchemy import Column, DateTime, String, Text, func

from kairos.db.base import Base


class KeyValueEntry(Base):
    __tablename__ = "kv_entries"

    # Stored in a column named "key".
    entry_key = Column("key", String(length=255), primary_key=True)
    # Raw serialized payload; decoding is the planner store's job.
    value = Column(Text, nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
