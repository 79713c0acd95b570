from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, Index, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base

# JSONB on Postgres, plain JSON elsewhere (sqlite in tests).
JSONType = JSON().with_variant(JSONB(), "postgresql")


class Job(Base):
  __tablename__ = "jobs"
  __table_args__ = (
    Index("ix_jobs_status_created_at", "status", "created_at"),
    Index("ix_jobs_user_created_at", "user_id", "created_at"),
  )

  job_id: Mapped[str] = mapped_column(String, primary_key=True)
  user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
  job_type: Mapped[str] = mapped_column(String, nullable=False, index=True)
  status: Mapped[str] = mapped_column(String, nullable=False)
  input_json: Mapped[dict] = mapped_column(JSONType, nullable=False)
  output_json: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
  progress_json: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
  error_json: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
  updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
  started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
  completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
  last_message: Mapped[str | None] = mapped_column(Text, nullable=True)
