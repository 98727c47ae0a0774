"""SQLAlchemy models for the signing workflow tables."""

import uuid
from datetime import datetime

from sqlalchemy import (
    ForeignKey,
    Index,
    Integer,
    String,
    TIMESTAMP,
    CheckConstraint,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base


class Signer(Base):
    """Signer directory entry. Referenced, never owned, by sequence entries."""

    __tablename__ = "signers"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    display_name: Mapped[str] = mapped_column(String, nullable=False)
    contact_ref: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=text("NOW()"), nullable=False
    )


class Document(Base):
    """Document under a signing workflow."""

    __tablename__ = "documents"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    title: Mapped[str] = mapped_column(String, nullable=False)
    content_ref: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default="pending"
    )  # pending | in_progress | completed | rejected
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=text("NOW()"), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=text("NOW()"), nullable=False
    )

    # Relationships
    sequence_entries: Mapped[list["SequenceEntry"]] = relationship(
        "SequenceEntry", back_populates="document", order_by="SequenceEntry.position"
    )
    signature_records: Mapped[list["SignatureRecord"]] = relationship(
        "SignatureRecord", back_populates="document", order_by="SignatureRecord.recorded_at"
    )


class SequenceEntry(Base):
    """Ordered required signer of a document. Immutable once written."""

    __tablename__ = "sequence_entries"
    __table_args__ = (
        UniqueConstraint("document_id", "position", name="uq_sequence_entries_document_position"),
        UniqueConstraint("document_id", "signer_id", name="uq_sequence_entries_document_signer"),
        CheckConstraint("position >= 1", name="ck_sequence_entries_position_positive"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    document_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("documents.id", ondelete="RESTRICT"), nullable=False
    )
    signer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("signers.id", ondelete="RESTRICT"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=text("NOW()"), nullable=False
    )

    document: Mapped["Document"] = relationship("Document", back_populates="sequence_entries")


class SignatureRecord(Base):
    """Append-only ledger row. Never updated or deleted."""

    __tablename__ = "signature_records"
    __table_args__ = (
        # At most one terminal record per (document, signer)
        Index(
            "uq_signature_records_terminal",
            "document_id",
            "signer_id",
            unique=True,
            postgresql_where=text("outcome IN ('completed', 'rejected')"),
        ),
        CheckConstraint(
            "outcome IN ('pending', 'completed', 'rejected')",
            name="ck_signature_records_outcome",
        ),
        Index("ix_signature_records_document", "document_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    document_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("documents.id", ondelete="RESTRICT"), nullable=False
    )
    signer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("signers.id", ondelete="RESTRICT"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    outcome: Mapped[str] = mapped_column(String, nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=text("NOW()"), nullable=False
    )

    document: Mapped["Document"] = relationship("Document", back_populates="signature_records")
