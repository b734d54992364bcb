from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.billing import Bill, InvoiceSequence
from app.services.errors import ConflictError
from app.utils.timezone import today_local

INVOICE_PREFIX = "INV"
INVOICE_PAD = 4
INVOICE_MAX_SEQ = 10**INVOICE_PAD - 1


def _date_key(d: date) -> int:
    return int(d.strftime("%Y%m%d"))


def format_invoice_number(d: date, seq: int) -> str:
    if seq > INVOICE_MAX_SEQ:
        raise ConflictError(
            f"Invoice sequence exhausted for {d.isoformat()} (max {INVOICE_MAX_SEQ})")
    return f"{INVOICE_PREFIX}-{d.strftime('%Y%m%d')}-{seq:0{INVOICE_PAD}d}"


def _bills_created_on(db: Session, d: date) -> int:
    start = datetime(d.year, d.month, d.day)
    end = start + timedelta(days=1)
    return int(
        db.query(func.count(Bill.id)).filter(
            Bill.created_at >= start,
            Bill.created_at < end,
        ).scalar() or 0)


def _invoice_taken(db: Session, invoice_number: str) -> bool:
    return db.query(Bill.id).filter(
        Bill.invoice_number == invoice_number).first() is not None


def next_invoice_number(db: Session, on_date: Optional[date] = None) -> str:
    """
    Allocate INV-YYYYMMDD-NNNN for the given lab-local day.

    The per-day InvoiceSequence row is locked FOR UPDATE for the rest of
    the caller's transaction. A new day's row starts after the bills
    already created that day. Numbers that already exist are skipped.

    Two transactions creating the same day's row at once: one of them
    fails with IntegrityError on date_key; the caller rolls back and retries.
    """
    d = on_date or today_local()
    dk = _date_key(d)

    row = (db.query(InvoiceSequence).filter(
        InvoiceSequence.date_key == dk).with_for_update().first())

    if not row:
        row = InvoiceSequence(date_key=dk,
                              next_seq=_bills_created_on(db, d) + 1)
        db.add(row)
        db.flush()

    seq = int(row.next_seq or 1)
    number = format_invoice_number(d, seq)
    while _invoice_taken(db, number):
        seq += 1
        number = format_invoice_number(d, seq)

    row.next_seq = seq + 1
    db.flush()

    return number
