"""Database module for SQLAlchemy models."""

from app.core.database import Base, engine, db_client, init_database, close_database
from app.database.models import Document, SequenceEntry, SignatureRecord, Signer

__all__ = [
    "Base",
    "engine",
    "db_client",
    "init_database",
    "close_database",
    "Document",
    "SequenceEntry",
    "SignatureRecord",
    "Signer",
]
