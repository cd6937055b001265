"""Desktop offline queue: flush with retry and exponential backoff."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional

from stocksync.client.api_client import ApiRequestError, ApiUnavailableError
from stocksync.client.pending import OperationType, PendingOperation, PendingOperationStore

logger = logging.getLogger(__name__)

_DELIVERY_EXCEPTIONS = (ApiRequestError, ApiUnavailableError)


def _thread_timer(delay: float, func: Callable[[], None]):
    timer = threading.Timer(delay, func)
    timer.daemon = True
    return timer


def backoff_delay(retry_count: int, *, base: float = 1.0, ceiling: float = 30.0) -> float:
    exponent = min(max(int(retry_count), 0), 30)
    return min(ceiling, base * (2 ** exponent))


@dataclass
class FlushResult:
    sent: int = 0
    failed: int = 0
    dropped: int = 0
    remaining: int = 0


def send_operation(api, op: PendingOperation):
    """Deliver one non-scan operation; raises on failure."""
    payload = dict(op.payload)
    if op.type == OperationType.ITEM_CREATE.value:
        payload.pop("temp_id", None)
        return api.create_item(payload)
    if op.type == OperationType.ITEM_UPDATE.value:
        item_id = payload.pop("id")
        return api.update_item(item_id, payload)
    if op.type == OperationType.ITEM_DELETE.value:
        return api.delete_item(payload["id"])
    raise ValueError("Unknown operation type: {}".format(op.type))


class OfflineQueue:
    def __init__(
        self,
        api,
        store: PendingOperationStore,
        *,
        max_scan_retries: int = 10,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        flush_delay: float = 0.1,
        timer_factory: Callable = _thread_timer,
    ) -> None:
        self.api = api
        self.store = store
        self.max_scan_retries = max(1, int(max_scan_retries))
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.flush_delay = flush_delay
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._busy = False
        self._kick_timer = None
        self._retry_timer = None

    @classmethod
    def from_settings(cls, api, store: PendingOperationStore, settings, **kwargs) -> "OfflineQueue":
        return cls(
            api,
            store,
            max_scan_retries=settings.QUEUE_MAX_SCAN_RETRIES,
            base_delay=settings.QUEUE_BASE_DELAY_SECONDS,
            max_delay=settings.QUEUE_MAX_DELAY_SECONDS,
            flush_delay=settings.QUEUE_FLUSH_DELAY_SECONDS,
            **kwargs,
        )

    @property
    def busy(self) -> bool:
        return self._busy

    def pending_count(self) -> int:
        return self.store.count()

    def enqueue(self, op_type, payload: dict) -> PendingOperation:
        op = self.store.append(op_type, payload)
        self._schedule_kick()
        return op

    def _schedule_kick(self) -> None:
        with self._lock:
            if self._kick_timer is not None:
                self._kick_timer.cancel()
            self._kick_timer = self._timer_factory(self.flush_delay, self._run_scheduled_flush)
            self._kick_timer.start()

    def _schedule_retry(self, delay: float) -> None:
        with self._lock:
            if self._retry_timer is not None:
                self._retry_timer.cancel()
            self._retry_timer = self._timer_factory(delay, self._run_scheduled_flush)
            self._retry_timer.start()

    def _run_scheduled_flush(self) -> None:
        self.flush()

    def _flush_scans(self, scans: list[PendingOperation], result: FlushResult) -> list[PendingOperation]:
        if not scans:
            return []
        try:
            self.api.apply_scans([op.payload for op in scans])
        except _DELIVERY_EXCEPTIONS as exc:
            logger.warning("Scan batch of %d failed: %s", len(scans), exc)
            kept = []
            for op in scans:
                op.retry_count += 1
                if op.retry_count >= self.max_scan_retries:
                    logger.warning("Dropping scan %s after %d attempts", op.payload.get("event_id"), op.retry_count)
                    result.dropped += 1
                else:
                    kept.append(op)
            result.failed += len(scans)
            return kept
        result.sent += len(scans)
        return []

    def _flush_others(self, others: list[PendingOperation], result: FlushResult) -> list[PendingOperation]:
        kept = []
        for op in others:
            try:
                send_operation(self.api, op)
            except _DELIVERY_EXCEPTIONS as exc:
                op.retry_count += 1
                result.failed += 1
                kept.append(op)
                logger.warning("Pending %s %s failed (attempt %d): %s", op.type, op.id, op.retry_count, exc)
                continue
            result.sent += 1
        return kept

    def flush(self) -> Optional[FlushResult]:
        """Attempt delivery of everything pending.

        Returns None when another flush is already running.
        """
        with self._lock:
            if self._busy:
                return None
            self._busy = True
        try:
            snapshot = self.store.load()
            result = FlushResult()
            if not snapshot:
                return result

            scans = [op for op in snapshot if op.is_scan]
            others = [op for op in snapshot if not op.is_scan]
            kept_scans = self._flush_scans(scans, result)
            kept_others = self._flush_others(others, result)

            order = {op.id: index for index, op in enumerate(snapshot)}
            survivors = sorted(kept_scans + kept_others, key=lambda op: order[op.id])
            merged = self.store.reconcile({op.id for op in snapshot}, survivors)
            result.remaining = len(merged)
        finally:
            with self._lock:
                self._busy = False

        if result.remaining:
            max_retry = max(op.retry_count for op in merged)
            delay = backoff_delay(max_retry, base=self.base_delay, ceiling=self.max_delay)
            logger.info("%d operation(s) still pending; next flush in %.1fs", result.remaining, delay)
            self._schedule_retry(delay)
        return result

    def close(self) -> None:
        with self._lock:
            for timer in (self._kick_timer, self._retry_timer):
                if timer is not None:
                    timer.cancel()
            self._kick_timer = None
            self._retry_timer = None


__all__ = ["FlushResult", "OfflineQueue", "backoff_delay", "send_operation"]
