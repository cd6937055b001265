"""Idempotent application of offline scan events."""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from stocksync.core.dates import now_ms
from stocksync.models.item import Item
from stocksync.models.scan_event import (
    STATUS_AMBIGUOUS,
    STATUS_APPLIED,
    STATUS_DUPLICATE,
    STATUS_ERROR,
    STATUS_NOT_FOUND,
    ScanEvent,
)
from stocksync.services.item_service import adjust_quantity, find_barcode_candidates

logger = logging.getLogger(__name__)

DEFAULT_MAX_DELTA = 100


class ScanRejected(ValueError):
    """A single scan event failed validation; the reason is a short code."""


@dataclass
class ScanOutcome:
    event_id: str
    status: str
    item: Optional[Item] = None
    items: list[Item] = field(default_factory=list)
    reason: Optional[str] = None


@dataclass(frozen=True)
class ScanInput:
    event_id: str
    barcode: str
    delta: int
    item_id: Optional[int] = None
    scanned_at: Optional[int] = None


def _whole_number(value) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        digits = text[1:] if text.startswith("-") else text
        if digits.isascii() and digits.isdigit():
            return int(text)
    return None


def _text(value) -> str:
    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, (str, int)):
        return str(value).strip()
    return ""


def validate_scan(
    event_id,
    barcode,
    delta,
    item_id=None,
    scanned_at=None,
    *,
    max_delta: int = DEFAULT_MAX_DELTA,
) -> ScanInput:
    """Normalize one raw event or raise ``ScanRejected``.

    Integer event ids and barcodes are accepted as text. ``delta`` and
    ``scanned_at`` must be JSON numbers with no fractional part.
    """
    eid = _text(event_id)
    code = _text(barcode)
    if not eid:
        raise ScanRejected("event_id_required")
    if not code:
        raise ScanRejected("barcode_required")
    if isinstance(delta, str):
        raise ScanRejected("delta_invalid")
    amount = _whole_number(delta)
    if amount is None:
        raise ScanRejected("delta_invalid")
    if amount == 0 or abs(amount) > max_delta:
        raise ScanRejected("delta_out_of_range")

    target = None
    if item_id is not None:
        target = _whole_number(item_id)
        if target is None or target <= 0:
            raise ScanRejected("item_id_invalid")

    stamp = None
    if scanned_at is not None:
        if isinstance(scanned_at, str):
            raise ScanRejected("scanned_at_invalid")
        stamp = _whole_number(scanned_at)
        if stamp is None:
            raise ScanRejected("scanned_at_invalid")

    return ScanInput(eid, code, amount, target, stamp)


def _items_by_ids(db: Session, ids: Iterable[int]) -> list[Item]:
    ids = list(ids)
    if not ids:
        return []
    rows = db.execute(select(Item).where(Item.id.in_(ids))).scalars().all()
    by_id = {row.id: row for row in rows}
    return [by_id[item_id] for item_id in ids if item_id in by_id]


def _replay(db: Session, record: ScanEvent) -> ScanOutcome:
    outcome = ScanOutcome(
        event_id=record.event_id,
        status=STATUS_DUPLICATE,
        reason=record.status,
    )
    if record.status == STATUS_APPLIED and record.item_id is not None:
        outcome.item = db.get(Item, record.item_id)
    elif record.status == STATUS_AMBIGUOUS:
        outcome.items = _items_by_ids(db, record.candidates)
    return outcome


def apply_scan_event(
    db: Session,
    *,
    event_id,
    barcode,
    delta,
    item_id=None,
    scanned_at=None,
    max_delta: int = DEFAULT_MAX_DELTA,
) -> ScanOutcome:
    """Apply one scan at most once.

    The event lookup, the stock change and the event record share one
    transaction, so a replayed event_id never changes stock again.
    Raises ``ScanRejected`` for malformed events.
    """
    scan = validate_scan(event_id, barcode, delta, item_id, scanned_at, max_delta=max_delta)
    eid, code, delta = scan.event_id, scan.barcode, scan.delta

    existing = db.get(ScanEvent, eid)
    if existing is not None:
        outcome = _replay(db, existing)
        db.commit()
        return outcome

    record = ScanEvent(
        event_id=eid,
        barcode=code,
        delta=delta,
        scanned_at=scan.scanned_at,
        applied_at=now_ms(),
    )
    outcome = ScanOutcome(event_id=eid, status=STATUS_NOT_FOUND)

    if scan.item_id is not None:
        target = db.get(Item, scan.item_id)
        candidates = [target] if target is not None and not target.deleted else []
    else:
        candidates = find_barcode_candidates(db, code)

    if len(candidates) == 1:
        item = adjust_quantity(candidates[0], delta)
        record.item_id = item.id
        outcome.status = STATUS_APPLIED
        outcome.item = item
    elif len(candidates) > 1:
        record.candidates = [candidate.id for candidate in candidates]
        outcome.status = STATUS_AMBIGUOUS
        outcome.items = candidates
    record.status = outcome.status

    db.add(record)
    try:
        db.commit()
    except IntegrityError:
        # Another writer recorded the same event_id first.
        db.rollback()
        existing = db.get(ScanEvent, eid)
        if existing is None:
            raise
        outcome = _replay(db, existing)
        db.commit()
        return outcome

    if outcome.item is not None:
        db.refresh(outcome.item)
    logger.debug("Scan %s on %s -> %s", eid, code, outcome.status, extra={"event_id": eid})
    return outcome


def apply_scan_batch(
    db: Session,
    events: Iterable,
    *,
    max_delta: int = DEFAULT_MAX_DELTA,
) -> list[ScanOutcome]:
    """Apply events in order; a failing event becomes an ``error`` result."""
    outcomes = []
    for event in events:
        event_id = _text(getattr(event, "event_id", None))
        try:
            outcome = apply_scan_event(
                db,
                event_id=event.event_id,
                barcode=event.barcode,
                delta=event.delta,
                item_id=event.item_id,
                scanned_at=event.scanned_at,
                max_delta=max_delta,
            )
        except ScanRejected as exc:
            db.rollback()
            outcome = ScanOutcome(event_id=event_id, status=STATUS_ERROR, reason=str(exc))
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Scan %s failed", event_id, extra={"event_id": event_id})
            outcome = ScanOutcome(event_id=event_id, status=STATUS_ERROR, reason="storage_error")
        outcomes.append(outcome)
    applied = sum(1 for outcome in outcomes if outcome.status == STATUS_APPLIED)
    logger.info("Processed %d scan events (%d applied)", len(outcomes), applied)
    return outcomes


def resolve_barcode(db: Session, barcode: str) -> tuple[str, list[Item]]:
    candidates = find_barcode_candidates(db, barcode)
    db.commit()
    if not candidates:
        return "not_found", []
    if len(candidates) == 1:
        return "found", candidates
    return "multiple", candidates


__all__ = [
    "DEFAULT_MAX_DELTA",
    "ScanInput",
    "ScanOutcome",
    "ScanRejected",
    "apply_scan_batch",
    "apply_scan_event",
    "resolve_barcode",
    "validate_scan",
]
