"""Mobile sync cycle: bootstrap, push pending work, pull changes."""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, field
from typing import Optional

from stocksync.client.api_client import ApiRequestError, ApiUnavailableError
from stocksync.client.local_cache import LocalCache
from stocksync.client.pending import OperationType, PendingOperation, PendingOperationStore
from stocksync.core.dates import now_ms

logger = logging.getLogger(__name__)

_STEP_EXCEPTIONS = (ApiRequestError, ApiUnavailableError)
_CLEARED_SCAN_STATUSES = ("applied", "duplicate")


@dataclass
class SyncResult:
    bootstrapped: bool = False
    created: int = 0
    updated: int = 0
    conflicts: int = 0
    scans_cleared: int = 0
    pulled: int = 0
    failed_steps: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed_steps

    def status_line(self) -> str:
        if self.bootstrapped:
            return "bootstrapped"
        if self.ok:
            return "ok"
        return "partial: {} failed".format(", ".join(self.failed_steps))


def _repoint(op: PendingOperation, temp_id: int, real_id: int) -> PendingOperation:
    payload = op.payload
    if op.is_scan:
        if payload.get("item_id") == temp_id:
            payload["item_id"] = real_id
    elif payload.get("id") == temp_id:
        payload["id"] = real_id
    return op


class SyncOrchestrator:
    def __init__(
        self,
        api,
        cache: LocalCache,
        pending: PendingOperationStore,
        *,
        max_scan_retries: int = 10,
    ) -> None:
        self.api = api
        self.cache = cache
        self.pending = pending
        self.max_scan_retries = max(1, int(max_scan_retries))
        self._cycle_lock = threading.Lock()

    # ---- local mutations (queued for the next cycle) ----

    def create_item(self, data: dict) -> dict:
        temp_id = self.cache.next_temp_id()
        row = dict(data, id=temp_id, deleted=False, last_modified=0)
        row.setdefault("quantity", 1)
        self.cache.upsert_item(row)
        self.pending.append(OperationType.ITEM_CREATE, dict(data, temp_id=temp_id))
        return row

    def update_item(self, item_id: int, changes: dict) -> Optional[dict]:
        current = self.cache.get_item(item_id)
        payload = dict(changes, id=item_id)
        if current is not None and current.get("last_modified"):
            payload["last_modified"] = current["last_modified"]
        self.pending.append(OperationType.ITEM_UPDATE, payload)
        if current is None:
            return None
        current.update(changes)
        self.cache.upsert_item(current)
        return current

    def delete_item(self, item_id: int) -> None:
        self.pending.append(OperationType.ITEM_DELETE, {"id": item_id})
        current = self.cache.get_item(item_id)
        if current is not None:
            current["deleted"] = True
            self.cache.upsert_item(current)

    def record_scan(self, barcode: str, delta: int = 1, *, item_id: Optional[int] = None) -> PendingOperation:
        payload = {
            "event_id": uuid.uuid4().hex,
            "barcode": barcode,
            "delta": int(delta),
            "scanned_at": now_ms(),
        }
        if item_id is not None:
            payload["item_id"] = item_id
        return self.pending.append(OperationType.SCAN, payload)

    def pending_count(self) -> int:
        return self.pending.count()

    @property
    def last_sync_status(self) -> Optional[str]:
        return self.cache.last_sync_status

    # ---- sync cycle ----

    def _bootstrap(self) -> None:
        snapshot = self.api.export_snapshot() or {}
        items = snapshot.get("items") or []
        self.cache.replace_items(items)
        self.cache.replace_categories(snapshot.get("categories") or [])
        self.cache.replace_locations(snapshot.get("locations") or [])
        self.cache.items_since_ms = max((int(row.get("last_modified") or 0) for row in items), default=0)
        self.cache.bootstrapped = True
        logger.info("Bootstrapped local cache with %d items", len(items))

    def _push_creates(self, result: SyncResult) -> None:
        ops = [op for op in self.pending.load() if op.type == OperationType.ITEM_CREATE.value]
        failed = False
        for op in ops:
            payload = dict(op.payload)
            temp_id = payload.pop("temp_id", None)
            try:
                response = self.api.create_item(payload)
            except _STEP_EXCEPTIONS as exc:
                logger.warning("Create %s failed: %s", op.id, exc)
                self._retain(op)
                failed = True
                continue
            item = (response or {}).get("item") or {}
            real_id = item.get("id")
            if temp_id is not None and real_id is not None:
                self.cache.replace_id(temp_id, item)
                self.pending.reconcile({op.id}, [], lambda other: _repoint(other, temp_id, real_id))
            else:
                if item:
                    self.cache.upsert_item(item)
                self.pending.reconcile({op.id}, [])
            result.created += 1
        if failed:
            result.failed_steps.append("creates")

    def _push_updates(self, result: SyncResult) -> None:
        kinds = (OperationType.ITEM_UPDATE.value, OperationType.ITEM_DELETE.value)
        ops = [op for op in self.pending.load() if op.type in kinds]
        failed = False
        for op in ops:
            if int(op.payload.get("id") or 0) < 0:
                # Its create has not reached the server yet.
                continue
            payload = dict(op.payload)
            item_id = payload.pop("id")
            try:
                if op.type == OperationType.ITEM_DELETE.value:
                    response = self.api.delete_item(item_id)
                else:
                    response = self.api.update_item(item_id, payload)
            except ApiRequestError as exc:
                if exc.is_conflict:
                    op.status = "conflict"
                    result.conflicts += 1
                    logger.warning("Update of item %s conflicts with the server copy", item_id)
                else:
                    logger.warning("Update %s failed: %s", op.id, exc)
                self._retain(op)
                failed = True
                continue
            except ApiUnavailableError as exc:
                logger.warning("Update %s failed: %s", op.id, exc)
                self._retain(op)
                failed = True
                continue
            item = (response or {}).get("item")
            if item:
                self.cache.upsert_item(item)
            self.pending.reconcile({op.id}, [])
            result.updated += 1
        if failed:
            result.failed_steps.append("updates")

    def _push_scans(self, result: SyncResult) -> None:
        ops = [op for op in self.pending.load() if op.is_scan and int(op.payload.get("item_id") or 0) >= 0]
        if not ops:
            return
        try:
            response = self.api.apply_scans([op.payload for op in ops])
        except _STEP_EXCEPTIONS:
            for op in ops:
                self._retain_scan(op)
            raise

        by_event = {entry.get("event_id"): entry for entry in (response or {}).get("results") or []}
        cleared = set()
        for op in ops:
            entry = by_event.get(op.payload.get("event_id")) or {}
            if entry.get("status") in _CLEARED_SCAN_STATUSES:
                if entry.get("item"):
                    self.cache.upsert_item(entry["item"])
                cleared.add(op.id)
            else:
                self._retain_scan(op)
        if cleared:
            self.pending.reconcile(cleared, [])
        result.scans_cleared += len(cleared)

    def _retain(self, op: PendingOperation) -> None:
        op.retry_count += 1
        self._replace(op)

    def _retain_scan(self, op: PendingOperation) -> None:
        op.retry_count += 1
        if op.retry_count >= self.max_scan_retries:
            logger.warning("Dropping scan %s after %d attempts", op.payload.get("event_id"), op.retry_count)
            self.pending.reconcile({op.id}, [])
            return
        self._replace(op)

    def _replace(self, op: PendingOperation) -> None:
        self.pending.save([op if current.id == op.id else current for current in self.pending.load()])

    def _pull_items(self, result: SyncResult) -> None:
        since = self.cache.items_since_ms
        # The server filters on last_modified > since; step back one ms so rows
        # stamped in the same millisecond as the mark are not skipped.
        response = self.api.list_items(since=max(0, since - 1), include_deleted=True) or {}
        rows = response.get("items") or []
        fresh = []
        for row in rows:
            cached = self.cache.get_item(row.get("id"))
            if cached is None or cached.get("last_modified") != row.get("last_modified"):
                fresh.append(row)
        if fresh:
            self.cache.upsert_items(fresh)
        if rows:
            newest = max(int(row.get("last_modified") or 0) for row in rows)
            self.cache.items_since_ms = max(since, newest)
        result.pulled = len(fresh)

    def _refresh_lookups(self) -> None:
        self.cache.replace_categories(self.api.list_categories() or [])
        self.cache.replace_locations(self.api.list_locations() or [])

    def sync_once(self) -> Optional[SyncResult]:
        """Run one full cycle; returns None if a cycle is already running.

        Each step fails independently; the failed step names end up in
        ``failed_steps`` and the cache's ``last_sync_status``.
        """
        if not self._cycle_lock.acquire(blocking=False):
            return None
        try:
            result = SyncResult()
            if not self.cache.bootstrapped:
                try:
                    self._bootstrap()
                    result.bootstrapped = True
                except _STEP_EXCEPTIONS as exc:
                    logger.warning("Bootstrap failed: %s", exc)
                    result.failed_steps.append("bootstrap")
                except Exception:
                    logger.exception("Bootstrap crashed")
                    result.failed_steps.append("bootstrap")
                self.cache.record_sync(result.status_line(), now_ms())
                return result

            steps = (
                ("creates", lambda: self._push_creates(result)),
                ("updates", lambda: self._push_updates(result)),
                ("scans", lambda: self._push_scans(result)),
                ("pull", lambda: self._pull_items(result)),
                ("lookups", self._refresh_lookups),
            )
            for name, step in steps:
                try:
                    step()
                except _STEP_EXCEPTIONS as exc:
                    logger.warning("Sync step %s failed: %s", name, exc, extra={"step": name})
                    result.failed_steps.append(name)
                except Exception:
                    logger.exception("Sync step %s crashed", name, extra={"step": name})
                    result.failed_steps.append(name)
            self.cache.record_sync(result.status_line(), now_ms())
            logger.info("Sync cycle finished: %s", result.status_line())
            return result
        finally:
            self._cycle_lock.release()


__all__ = ["SyncOrchestrator", "SyncResult"]
