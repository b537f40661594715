"""ORM mapping for the metrics table written by the ingest side."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class MetricRow(Base):
    __tablename__ = "Metrics"

    id: Mapped[int] = mapped_column("Id", Integer, primary_key=True, autoincrement=True)
    type: Mapped[str] = mapped_column("Type", String(100), nullable=False, index=True)
    name: Mapped[str] = mapped_column("Name", String(255), nullable=False, index=True)
    payload_json: Mapped[str | None] = mapped_column("PayloadJson", Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        "CreatedAt", DateTime(timezone=True), nullable=False, index=True
    )
