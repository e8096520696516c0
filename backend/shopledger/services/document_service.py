# Overview: Allocation of human-readable document numbers.

from __future__ import annotations

import random

from sqlalchemy import update

from ..extensions import db
from ..models import DocumentSequence
from ..time_utils import stamp, utcnow


def next_document_number(*, document_type: str, prefix: str, pad: int = 4) -> str:
    """
    Allocate the next sequential number for a document type.

    Runs inside the caller's transaction (flush only, no commit), so a rolled
    back operation also releases its number. Format: PREFIX-YYYYMMDD-NNNN.
    """
    if not document_type:
        raise ValueError("document_type is required")

    stmt = (
        update(DocumentSequence)
        .where(DocumentSequence.document_type == document_type)
        .values(next_number=DocumentSequence.next_number + 1)
    )
    result = db.session.execute(stmt)
    if result.rowcount:
        current = (
            db.session.query(DocumentSequence.next_number)
            .filter_by(document_type=document_type)
            .scalar()
        )
        next_num = current - 1
    else:
        db.session.add(DocumentSequence(document_type=document_type, next_number=2))
        db.session.flush()
        next_num = 1

    return f"{prefix}-{utcnow():%Y%m%d}-{next_num:0{pad}d}"


def random_document_number(prefix: str) -> str:
    """
    Timestamp plus a random 4-digit suffix: PREFIX-yyyymmddHHMMSS-NNNN.

    Not deduplicated; a collision is rejected by the unique constraint.
    """
    return f"{prefix}-{stamp()}-{random.randint(1000, 9999)}"


def timestamp_reference(prefix: str) -> str:
    """Reference number for generated ledger rows: PREFIX-yyyymmddHHMMSS."""
    return f"{prefix}-{stamp()}"
