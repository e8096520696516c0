from __future__ import annotations

from ..extensions import db


class DocumentSequence(db.Model):
    """
    Per-type counter used to allocate human-readable document numbers.

    One row per document_type (e.g. "ORDER"); next_number is the value the
    next allocation will hand out.
    """
    __tablename__ = "document_sequences"
    __table_args__ = (
        db.UniqueConstraint("document_type", name="uq_document_sequences_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    document_type = db.Column(db.String(32), nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)
