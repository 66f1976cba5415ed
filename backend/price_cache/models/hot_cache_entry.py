"""Hot cache key/value model."""

from datetime import datetime, timezone
from sqlalchemy import Column, String, Text, DateTime

from .database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HotCacheEntry(Base):
    """One JSON blob in the hot cache, keyed by name."""
    __tablename__ = "hot_cache_entries"

    key = Column(String(200), primary_key=True)
    value = Column(Text, nullable=False)  # compact JSON

    # Timestamp
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def __repr__(self):
        return f"<HotCacheEntry(key={self.key})>"
