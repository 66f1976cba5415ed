# Database Models

from .database import Base, DEFAULT_DATABASE_URL, create_engine, create_session_maker, init_db
from .hot_cache_entry import HotCacheEntry

__all__ = [
    "Base",
    "DEFAULT_DATABASE_URL",
    "create_engine",
    "create_session_maker",
    "init_db",
    "HotCacheEntry",
]
