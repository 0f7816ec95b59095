# Overview: Atomic allocation of transaction, session and order numbers.

from __future__ import annotations

from datetime import datetime

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DocumentSequence
from agripos.time_utils import date_stamp


TXN_PREFIX = "TXN"
SESSION_PREFIX = "POS"
ORDER_PREFIX = "ORD"


class DocumentSequenceError(Exception):
    """Raised when document sequence operations fail."""
    pass


def _current_number(branch_id: int, document_type: str) -> int:
    return (
        db.session.query(DocumentSequence.next_number)
        .filter_by(branch_id=branch_id, document_type=document_type)
        .scalar()
    )


def next_document_number(
    *,
    branch_id: int,
    prefix: str,
    when: datetime | None = None,
    pad: int = 4,
) -> str:
    """
    Atomically allocate the next number for a branch/prefix/day.

    Format: PREFIX-YYYYMMDD-BBB-NNNN. The counter lives in one
    document_sequences row per (branch, prefix-day) and is bumped with a
    single UPDATE ... SET next_number = next_number + 1, so concurrent
    checkouts never see the same value. Runs inside the caller's unit of
    work and does not commit.
    """
    if not branch_id:
        raise DocumentSequenceError("branch_id is required")
    if not prefix:
        raise DocumentSequenceError("prefix is required")

    stamp = date_stamp(when)
    document_type = f"{prefix}-{stamp}"

    stmt = (
        update(DocumentSequence)
        .where(
            DocumentSequence.branch_id == branch_id,
            DocumentSequence.document_type == document_type,
        )
        .values(next_number=DocumentSequence.next_number + 1)
        .execution_options(synchronize_session=False)
    )

    result = db.session.execute(stmt)
    if result.rowcount:
        next_num = _current_number(branch_id, document_type) - 1
    else:
        nested = db.session.begin_nested()
        try:
            db.session.add(DocumentSequence(branch_id=branch_id, document_type=document_type, next_number=2))
            db.session.flush()
            nested.commit()
            next_num = 1
        except IntegrityError:
            # Another writer created the row first; take the next value from it.
            nested.rollback()
            result = db.session.execute(stmt)
            if not result.rowcount:
                raise
            next_num = _current_number(branch_id, document_type) - 1

    return f"{prefix}-{stamp}-{branch_id:03d}-{next_num:0{pad}d}"
