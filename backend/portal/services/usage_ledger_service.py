# Overview: Monthly free-box usage ledger; atomic per-(business, month) counter.

"""
Usage Ledger Service

INVARIANTS:
- One row per (business_number, year_month); absent row means 0 used.
- used_free_boxes never decreases within a month.
- With a cap, a single write never moves the counter past the cap, even
  when two orders race: the ceiling is evaluated inside the same
  INSERT ... ON CONFLICT DO UPDATE statement, not in Python.
- Without a cap, get_used after N writes equals the sum of their boxes.

Reads and writes are separate calls. The order path reads before the order
is persisted and writes after it, so two concurrent orders can be quoted
the same remaining quota. The ceiling keeps the ledger inside the cap; the
caller is told how many boxes were actually recorded.
"""

from __future__ import annotations

import re
from datetime import datetime

import sqlalchemy as sa
from flask import current_app
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import MonthlyFreeBoxUsage
from ..time_utils import utcnow, year_month_for
from ..validation import ValidationError
from .business_service import normalize_business_number
from .concurrency import run_with_retry


YEAR_MONTH_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")

_INSERT_BY_DIALECT = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


class UsageLedgerError(Exception):
    """Raised when the ledger cannot be written on this database."""


def _check_year_month(year_month: str) -> str:
    if not isinstance(year_month, str) or not YEAR_MONTH_RE.match(year_month):
        raise ValidationError("year_month must look like YYYY-MM")
    return year_month


def current_year_month(now: datetime | None = None) -> str:
    return year_month_for(now or utcnow(), current_app.config["BUSINESS_TIMEZONE"])


def get_used(business_number: str, year_month: str) -> int:
    """Free boxes already granted to this business in this month."""
    used = (
        db.session.query(MonthlyFreeBoxUsage.used_free_boxes)
        .filter_by(
            business_number=normalize_business_number(business_number),
            year_month=_check_year_month(year_month),
        )
        .scalar()
    )
    return used or 0


def get_used_or_zero(business_number: str, year_month: str) -> int:
    """
    get_used with a fail-open fallback.

    A failed read is treated as nothing used so ordering stays available.
    This can over-grant for one order; the grant is still bounded by the
    cart's own raw free boxes and the ledger write keeps its ceiling.
    """
    try:
        return get_used(business_number, year_month)
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.warning(
            "Usage ledger read failed for %s %s; assuming 0 used",
            business_number, year_month, exc_info=True,
        )
        return 0


def _upsert_statement(business_number: str, year_month: str, boxes: int, cap: int | None):
    dialect = db.session.get_bind().dialect.name
    insert = _INSERT_BY_DIALECT.get(dialect)
    if insert is None:
        raise UsageLedgerError(f"Usage ledger upsert not supported on {dialect}")

    table = MonthlyFreeBoxUsage.__table__
    now = utcnow()
    initial = boxes if cap is None else min(boxes, cap)

    stmt = insert(table).values(
        business_number=business_number,
        year_month=year_month,
        used_free_boxes=initial,
        created_at=now,
        updated_at=now,
    )

    current = table.c.used_free_boxes
    total = current + boxes
    if cap is not None:
        # Never decrease a row that already sits at or above the cap
        total = sa.case((current >= cap, current), (total > cap, cap), else_=total)

    return stmt.on_conflict_do_update(
        index_elements=["business_number", "year_month"],
        set_={"used_free_boxes": total, "updated_at": now},
    )


def record_usage(
    business_number: str,
    year_month: str,
    additional_boxes: int,
    *,
    cap: int | None = None,
) -> int:
    """
    Add additional_boxes to the month's counter and return the new total.

    When cap is given the counter stops at cap; compare the returned total
    with the previous read to see whether the full amount was recorded.
    A zero grant writes nothing (rows are created on the first real grant).
    """
    if isinstance(additional_boxes, bool) or not isinstance(additional_boxes, int):
        raise ValidationError("additional_boxes must be an integer")
    if additional_boxes < 0:
        raise ValidationError("additional_boxes must be zero or greater")

    business_number = normalize_business_number(business_number)
    _check_year_month(year_month)

    if additional_boxes == 0:
        return get_used(business_number, year_month)

    def _op():
        db.session.execute(_upsert_statement(business_number, year_month, additional_boxes, cap))
        total = get_used(business_number, year_month)
        db.session.commit()
        return total

    return run_with_retry(_op, label="usage ledger upsert")


def usage_summary(business_number: str, year_month: str, cap: int) -> dict:
    used = get_used(business_number, year_month)
    return {
        "business_number": normalize_business_number(business_number),
        "year_month": year_month,
        "used_free_boxes": used,
        "monthly_cap": cap,
        "remaining_free_boxes": max(0, cap - used),
    }
