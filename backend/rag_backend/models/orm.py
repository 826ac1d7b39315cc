"""SQLAlchemy ORM models."""

from __future__ import annotations

import datetime

from sqlalchemy import JSON, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class PatientDocumentRecord(Base):
    __tablename__ = "patient_documents"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    file_name: Mapped[str] = mapped_column(String(255))
    upload_date: Mapped[datetime.datetime] = mapped_column(
        default=lambda: datetime.datetime.now(datetime.UTC), index=True
    )
    content: Mapped[str] = mapped_column(Text)
    chunks: Mapped[list] = mapped_column(JSON, default=list)
    test_results: Mapped[dict] = mapped_column(JSON, default=dict)
    entities: Mapped[dict] = mapped_column(JSON, default=dict)
    vector_status: Mapped[str] = mapped_column(String(16), default="pending")
    failed_chunks: Mapped[list] = mapped_column(JSON, default=list)
