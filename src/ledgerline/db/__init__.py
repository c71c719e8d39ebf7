"""Database package — engine/session handling, ORM tables and CRUD helpers."""
from ledgerline.db.database import Base, Database

__all__ = ["Base", "Database"]
