# Overview: Transaction boundary shared by every mutating service operation.

from __future__ import annotations

from ..extensions import db


def run_in_transaction(func):
    """
    Execute one logical operation as a single DB transaction.

    Commits when func returns; on any exception the session is rolled back
    and the exception re-raised, so callers never observe a partial write.
    There is no retry: a failed operation needs a new caller-initiated call.
    """
    try:
        result = func()
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return result
