from sqlalchemy import Column, Integer, String, Float, DateTime, Index
from sqlalchemy.sql import func
from .database import Base

class KnowledgeEntryRecord(Base):
    __tablename__ = "knowledge_entries"

    id = Column(String, primary_key=True)
    position = Column(Integer, nullable=False, index=True)  # insertion order
    category = Column(String, nullable=False, default="")
    question = Column(String, nullable=False)
    answer = Column(String, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

class FactRowRecord(Base):
    __tablename__ = "fact_rows"

    # Auto-increment key so the same identifier can appear on many dates and partitions
    id = Column(Integer, primary_key=True, autoincrement=True)
    source = Column(String, nullable=False, default="shangzhi", index=True)
    identifier = Column(String, nullable=False)
    date = Column(String(10), nullable=False, index=True)  # YYYY-MM-DD
    quantity = Column(Float, nullable=True)
    imported_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("ix_fact_rows_identifier_date", "identifier", "date"),
    )
