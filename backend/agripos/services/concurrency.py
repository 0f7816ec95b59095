# Overview: Row locking, retry and per-item savepoint helpers for multi-row workflows.

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts on versioned inventory/order rows).
    The whole operation is replayed, so func must start its own reads.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc


@dataclass
class ItemResult:
    """Outcome of one item in a best-effort per-item loop."""
    product_id: int
    success: bool
    error: str | None = None
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        out = {"product_id": self.product_id, "success": self.success, "error": self.error}
        out.update(self.data)
        return out


def failed_items(results: list[ItemResult]) -> list[ItemResult]:
    return [r for r in results if not r.success]


def run_item_in_savepoint(product_id: int, func, *, step: str) -> ItemResult:
    """
    Run func() inside a nested savepoint.

    A failure rolls back only this item's writes; the outer unit of work
    stays usable. func returns a dict merged into the result data.
    """
    nested = db.session.begin_nested()
    try:
        data = func() or {}
        nested.commit()
        return ItemResult(product_id=product_id, success=True, data=data)
    except Exception as exc:  # noqa: BLE001
        nested.rollback()
        current_app.logger.warning("%s failed for product %s: %s", step, product_id, exc)
        return ItemResult(product_id=product_id, success=False, error=str(exc))
