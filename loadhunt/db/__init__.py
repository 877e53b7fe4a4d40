from loadhunt.db.base import Base
from loadhunt.db.session import get_db, engine, SessionLocal
from loadhunt.db.tables import ALL_TABLE_NAMES, MATCH_TABLE_NAMES

__all__ = ["get_db", "engine", "SessionLocal", "Base", "ALL_TABLE_NAMES", "MATCH_TABLE_NAMES"]
