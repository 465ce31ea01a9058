"""Stored document model."""
from datetime import datetime
from sqlalchemy import Column, String, DateTime, JSON, Index
from readdash.db.base import Base


class StoredDocument(Base):
    """One schemaless document, addressed by (collection, id)."""
    
    __tablename__ = "documents"
    
    collection = Column(String(100), primary_key=True)
    id = Column(String(128), primary_key=True)
    data = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("ix_documents_collection_created", "collection", "created_at"),
    )
