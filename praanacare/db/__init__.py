"""
PraanaCare - Database Package
SQLAlchemy persistence layer for users, role profiles, vitals, alerts and chats.
"""
from praanacare.db.base import Base, engine, get_db, init_db, SessionLocal

__all__ = ["Base", "engine", "get_db", "init_db", "SessionLocal"]
