from .database import Base, init_db, make_engine, make_session_factory
from .repository import EventRepository

__all__ = ["Base", "EventRepository", "init_db", "make_engine", "make_session_factory"]
