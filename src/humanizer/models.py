from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Float, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from humanizer.db import Base


class RewriteJobRecord(Base):
    __tablename__ = "rewrite_jobs"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    input_text: Mapped[str] = mapped_column(Text, nullable=False)
    style_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    content_mix_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    custom_instructions: Mapped[str | None] = mapped_column(Text, nullable=True)
    selected_presets: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    provider: Mapped[str] = mapped_column(String(32), nullable=False)
    chunks: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON, nullable=True)
    selected_chunk_ids: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    mixing_mode: Mapped[str | None] = mapped_column(String(32), nullable=True)
    output_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    input_ai_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    output_ai_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        server_default=text("'pending'"),
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
    )


class DocumentJobRecord(Base):
    __tablename__ = "document_jobs"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False)
    provider: Mapped[str] = mapped_column(String(32), nullable=False)
    mode: Mapped[str] = mapped_column(String(16), nullable=False)
    payload_json: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    progress_current: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        server_default=text("0"),
    )
    progress_total: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        server_default=text("0"),
    )
    output_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    result_json: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    finished_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
